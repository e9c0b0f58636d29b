from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from eventstaff.errors import ApiError
from eventstaff.models import UserRole
from eventstaff.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

REPORT_ADMIN_ROLES: tuple[UserRole, ...] = (UserRole.SUPER_ADMIN, UserRole.ADMIN)
COMPANY_REPORT_ROLES: tuple[UserRole, ...] = (*REPORT_ADMIN_ROLES, UserRole.RESPONSABILE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    *,
    sub: str,
    role: UserRole,
    company_id: str | None = None,
    name: str | None = None,
) -> tuple[str, dict[str, Any]]:
    settings = get_settings()
    now = _utcnow()
    claims = {
        "sub": sub,
        "role": role.value,
        "company_id": company_id,
        "name": name,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.access_token_minutes)).timestamp()),
        "jti": str(uuid4()),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm="HS256")
    return token, claims


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except JWTError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token is invalid.") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token subject is invalid.")
    return payload


def claims_role(claims: dict[str, Any]) -> UserRole | None:
    try:
        return UserRole(claims.get("role"))
    except ValueError:
        return None


def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Missing bearer token.")

    payload = decode_token(credentials.credentials)
    request.state.actor = payload.get("role") or "user"
    request.state.actor_id = str(payload.get("sub"))
    return payload


def require_roles(*roles: UserRole) -> Callable[..., dict[str, Any]]:
    if not roles:
        raise ValueError("At least one role is required")
    allowed = frozenset(roles)

    def _dependency(claims: dict[str, Any] = Depends(require_user)) -> dict[str, Any]:
        if claims_role(claims) not in allowed:
            raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")
        return claims

    return _dependency
