from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any

from eventstaff.services.time_math import BreakInterval

logger = logging.getLogger("eventstaff.embedded_json")


class ParseStatus(str, enum.Enum):
    OK = "OK"
    EMPTY = "EMPTY"
    MALFORMED = "MALFORMED"


@dataclass(frozen=True, slots=True)
class EmbeddedList:
    status: ParseStatus
    items: tuple[Any, ...] = ()
    error: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.status == ParseStatus.OK


@dataclass(frozen=True, slots=True)
class AssignedUser:
    user_id: str
    duty_id: str | None = None


EMPTY_LIST = EmbeddedList(status=ParseStatus.EMPTY)


def parse_embedded_list(raw: str | None, *, field: str = "", owner_id: str | None = None) -> EmbeddedList:
    """Decode a JSON array stored as text.

    Blank text and ``[]`` are EMPTY; invalid JSON or a non-array document is MALFORMED
    and logged, so callers can fall back without hiding the bad record.
    """
    if raw is None or not raw.strip():
        return EMPTY_LIST
    try:
        value = json.loads(raw)
    except ValueError as exc:
        return _malformed(field, owner_id, f"invalid json: {exc.msg}")
    if not isinstance(value, list):
        return _malformed(field, owner_id, f"expected array, got {type(value).__name__}")
    if not value:
        return EMPTY_LIST
    return EmbeddedList(status=ParseStatus.OK, items=tuple(value))


def _malformed(field: str, owner_id: str | None, error: str) -> EmbeddedList:
    logger.warning(
        "embedded_json_malformed",
        extra={"field": field, "owner_id": owner_id, "error": error},
    )
    return EmbeddedList(status=ParseStatus.MALFORMED, error=error)


def parse_assigned_users(raw: str | None, *, owner_id: str | None = None) -> list[AssignedUser]:
    parsed = parse_embedded_list(raw, field="assigned_users", owner_id=owner_id)
    users: list[AssignedUser] = []
    for item in parsed.items:
        # legacy rows store bare user ids
        if isinstance(item, str) and item:
            users.append(AssignedUser(user_id=item))
            continue
        if not isinstance(item, dict):
            continue
        user_id = item.get("userId")
        if not isinstance(user_id, str) or not user_id:
            continue
        duty_id = item.get("dutyId")
        users.append(AssignedUser(user_id=user_id, duty_id=duty_id if isinstance(duty_id, str) and duty_id else None))
    return users


def first_requested_duty(raw: str | None, *, owner_id: str | None = None) -> str | None:
    parsed = parse_embedded_list(raw, field="personnel_requests", owner_id=owner_id)
    if not parsed.is_ok:
        return None
    first = parsed.items[0]
    if not isinstance(first, dict):
        return None
    duty_id = first.get("dutyId")
    if isinstance(duty_id, str) and duty_id:
        return duty_id
    return None


def parse_break_intervals(raw: str | None, *, owner_id: str | None = None) -> list[BreakInterval]:
    parsed = parse_embedded_list(raw, field="scheduled_breaks", owner_id=owner_id)
    return [
        BreakInterval(start=item["start"], end=item["end"])
        for item in parsed.items
        if isinstance(item, dict) and isinstance(item.get("start"), str) and isinstance(item.get("end"), str)
    ]


def parse_id_list(raw: str | None, *, field: str = "", owner_id: str | None = None) -> list[str]:
    parsed = parse_embedded_list(raw, field=field, owner_id=owner_id)
    return [item for item in parsed.items if isinstance(item, str) and item]
