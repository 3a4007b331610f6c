"""Field validators for task payloads.

Every validator returns a :class:`FieldResult`. On success ``value`` holds
what should be written to the record (stripped text, parsed timestamp,
canonical id); on failure ``error`` holds the client-facing message.
Only :func:`validate_assigned_to` touches storage, so it is the only
coroutine here.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from .models import TaskStatus

TITLE_MAX_LENGTH = 100
PRIORITY_MIN = 1
PRIORITY_MAX = 5

TITLE_ERROR = "Title must be between 1 and 100 characters"
DESCRIPTION_ERROR = "Description is required and must be a non-empty string"
STATUS_ERROR = "Invalid status value"
PRIORITY_ERROR = "Priority must be an integer between 1 and 5"
DUE_DATE_FORMAT_ERROR = "Invalid due date format"
DUE_DATE_PAST_ERROR = "Due date must be in the future"
ASSIGNEE_ID_ERROR = "Invalid assignedTo user ID"
ASSIGNEE_MISSING_ERROR = "Assigned user does not exist"

_STATUS_VALUES = frozenset(status.value for status in TaskStatus)


@dataclass(frozen=True)
class FieldResult:
    valid: bool
    error: Optional[str] = None
    value: Any = None

    @classmethod
    def ok(cls, value: Any) -> "FieldResult":
        return cls(valid=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "FieldResult":
        return cls(valid=False, error=error)


def validate_title(title: Any) -> FieldResult:
    if not isinstance(title, str):
        return FieldResult.fail(TITLE_ERROR)
    stripped = title.strip()
    if not 1 <= len(stripped) <= TITLE_MAX_LENGTH:
        return FieldResult.fail(TITLE_ERROR)
    return FieldResult.ok(stripped)


def validate_description(description: Any) -> FieldResult:
    if not isinstance(description, str) or not description.strip():
        return FieldResult.fail(DESCRIPTION_ERROR)
    return FieldResult.ok(description.strip())


def validate_status(status: Any) -> FieldResult:
    if not isinstance(status, str) or status not in _STATUS_VALUES:
        return FieldResult.fail(STATUS_ERROR)
    return FieldResult.ok(TaskStatus(status))


def validate_priority(priority: Any) -> FieldResult:
    # bool is an int subclass; JSON true must not pass as 1
    if isinstance(priority, bool) or not isinstance(priority, int):
        return FieldResult.fail(PRIORITY_ERROR)
    if not PRIORITY_MIN <= priority <= PRIORITY_MAX:
        return FieldResult.fail(PRIORITY_ERROR)
    return FieldResult.ok(priority)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch milliseconds into an aware UTC datetime.

    Returns None when ``raw`` is not a recognisable timestamp or falls
    outside the representable range once moved to UTC. Naive ISO values are
    taken to be UTC.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        try:
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.strip())
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
        except (OverflowError, ValueError):
            return None
    return None


def validate_due_date(due_date: Any, now: Optional[datetime] = None) -> FieldResult:
    """Check that ``due_date`` parses and lies strictly after ``now``.

    ``now`` defaults to the current time and must be timezone aware when
    given. The parsed value is returned as aware UTC.
    """
    parsed = parse_timestamp(due_date)
    if parsed is None:
        return FieldResult.fail(DUE_DATE_FORMAT_ERROR)
    if now is None:
        now = datetime.now(timezone.utc)
    if parsed <= now:
        return FieldResult.fail(DUE_DATE_PAST_ERROR)
    return FieldResult.ok(parsed)


def canonical_id(raw: Any) -> Optional[str]:
    """Lowercase hyphenated form of a UUID string, or None if malformed."""
    if not isinstance(raw, str):
        return None
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return None


async def validate_assigned_to(assigned_to: Any, users) -> FieldResult:
    """Check that ``assigned_to`` names an existing user.

    ``users`` is anything with an awaitable ``exists_by_id``. Malformed ids
    are rejected without a lookup.
    """
    user_id = canonical_id(assigned_to)
    if user_id is None:
        return FieldResult.fail(ASSIGNEE_ID_ERROR)
    if not await users.exists_by_id(user_id):
        return FieldResult.fail(ASSIGNEE_MISSING_ERROR)
    return FieldResult.ok(user_id)
