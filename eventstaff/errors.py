from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    payload: dict[str, Any] = {
        "error": message,
        "code": code,
        "request_id": get_request_id(request),
    }
    if details is not None:
        payload["details"] = details
    return JSONResponse(status_code=status_code, content=payload)


def bad_request(message: str, *, details: Any = None) -> ApiError:
    return ApiError(status_code=400, code="VALIDATION_ERROR", message=message, details=details)


def not_found(message: str) -> ApiError:
    return ApiError(status_code=404, code="NOT_FOUND", message=message)


def forbidden(message: str = "Insufficient permissions.") -> ApiError:
    return ApiError(status_code=403, code="FORBIDDEN", message=message)
