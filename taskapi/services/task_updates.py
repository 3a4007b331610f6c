"""Validation and authorization pipeline behind ``PATCH /api/tasks/{id}``.

The handler walks a single request through load, authorize, validate,
merge and persist. Every failure is folded into an :class:`UpdateFailure`
on the returned :class:`UpdateResult`; nothing raises out of
:func:`apply_task_update`.

Concurrent updates to one task are not coordinated: the last save wins.
"""

import enum
import inspect
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..models import User, UserRole
from ..schemas.task import TaskRead
from ..validators import (
    FieldResult,
    validate_assigned_to,
    validate_description,
    validate_due_date,
    validate_priority,
    validate_status,
    validate_title,
)

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"
NOT_AUTHORIZED = "Not authorized to update this task"
UPDATE_FAILED = "Failed to update task"


class FailureKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.FORBIDDEN: 403,
    FailureKind.VALIDATION_FAILED: 400,
    FailureKind.PERSISTENCE_FAILED: 400,
}


@dataclass(frozen=True)
class Caller:
    """Authenticated identity making the request."""
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
        return cls(user_id=user.id, role=role)


@dataclass(frozen=True)
class UpdateFailure:
    kind: FailureKind
    message: str

    @property
    def status_code(self) -> int:
        return self.kind.status_code


@dataclass(frozen=True)
class UpdateResult:
    task: Optional[TaskRead] = None
    failure: Optional[UpdateFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


Validator = Callable[[Any], Any]


def field_checks(users) -> Sequence[Tuple[str, Validator]]:
    """Fields in the order they are checked; the first failure is reported."""
    return (
        ("title", validate_title),
        ("description", validate_description),
        ("status", validate_status),
        ("priority", validate_priority),
        ("due_date", validate_due_date),
        ("assigned_to", partial(validate_assigned_to, users=users)),
    )


async def check_fields(
    changes: Mapping[str, Any], users
) -> Tuple[Dict[str, Any], Optional[str]]:
    """Run the validators for the fields present in ``changes``.

    Returns the values to write and None, or an empty dict and the first
    error message.
    """
    pending: Dict[str, Any] = {}
    for field, check in field_checks(users):
        if field not in changes:
            continue
        result: FieldResult = check(changes[field])
        if inspect.isawaitable(result):
            result = await result
        if not result.valid:
            return {}, result.error
        pending[field] = result.value
    return pending, None


async def apply_task_update(
    task_id: str,
    changes: Mapping[str, Any],
    caller: Caller,
    tasks,
    users,
) -> UpdateResult:
    """Apply a partial update to one task on behalf of ``caller``.

    Args:
        task_id: Target task id
        changes: Raw values keyed by field name, only for fields the client sent
        caller: Who is asking
        tasks: Store with awaitable ``load_by_id`` and ``save``
        users: Store with awaitable ``exists_by_id`` and ``get_by_id``

    Returns:
        UpdateResult holding either the projected task or the failure
    """
    task = await tasks.load_by_id(task_id)
    if task is None:
        return _reject(task_id, FailureKind.NOT_FOUND, TASK_NOT_FOUND)

    if task.assigned_to != caller.user_id and not caller.is_admin:
        return _reject(task_id, FailureKind.FORBIDDEN, NOT_AUTHORIZED)

    pending, error = await check_fields(changes, users)
    if error is not None:
        return _reject(task_id, FailureKind.VALIDATION_FAILED, error)

    for field, value in pending.items():
        setattr(task, field, value)

    try:
        task = await tasks.save(task)
    except SQLAlchemyError as exc:
        return _reject(task_id, FailureKind.PERSISTENCE_FAILED, _describe(exc) or UPDATE_FAILED)

    logger.info("Task %s updated by %s (fields: %s)", task_id, caller.user_id, sorted(pending) or "none")
    assignee = await users.get_by_id(task.assigned_to)
    return UpdateResult(task=TaskRead.from_task(task, assignee))


def _describe(exc: SQLAlchemyError) -> str:
    # DBAPI errors wrap the driver exception, whose text is the useful part
    orig = getattr(exc, "orig", None)
    if orig is not None:
        return str(orig)
    return str(exc.args[0]) if exc.args else ""


def _reject(task_id: str, kind: FailureKind, message: str) -> UpdateResult:
    logger.info("Update of task %s rejected (%s): %s", task_id, kind.name, message)
    return UpdateResult(failure=UpdateFailure(kind=kind, message=message))
