import logging
import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..database import get_db
from ..models import Task as TaskModel, TaskStatus, User, UserRole
from ..schemas.task import Pagination, TaskCreate, TaskListItem, TaskPage, TaskRead, TaskUpdate
from ..services.task_updates import Caller, apply_task_update, check_fields
from ..stores import TaskStore, UserStore
from .auth import get_current_user, require_roles

router = APIRouter()
logger = logging.getLogger(__name__)

PAGE_SIZE = 20
REQUIRED_CREATE_FIELDS = ("title", "description", "due_date", "assigned_to")


def _get_update_data(payload: Optional[TaskUpdate]) -> Dict[str, Any]:
    if payload is None:
        return {}
    return payload.model_dump(exclude_unset=True)


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a task; the caller becomes its creator."""
    data = _get_update_data(payload)
    if any(not data.get(field) for field in REQUIRED_CREATE_FIELDS):
        raise HTTPException(status_code=400, detail="Missing required fields")

    # Unset and null status/priority fall back to the model defaults
    provided = {field: value for field, value in data.items() if value is not None}
    users = UserStore(db)
    values, error = await check_fields(provided, users)
    if error is not None:
        raise HTTPException(status_code=400, detail=error)

    task = TaskModel(created_by=current_user.id, **values)
    try:
        task = await TaskStore(db).save(task)
    except SQLAlchemyError:
        logger.exception("Failed to create task for %s", current_user.id)
        raise HTTPException(status_code=400, detail="Failed to create task")

    logger.info("Task %s created by %s", task.id, current_user.id)
    assignee = await users.get_by_id(task.assigned_to)
    return TaskRead.from_task(task, assignee)


@router.get("", response_model=TaskPage)
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(default=None, alias="status"),
    priority: Optional[int] = None,
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
    page: int = 1,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List tasks newest first, 20 per page.

    ``assignedTo=me`` restricts the list to the caller's own tasks; any
    other value is ignored.
    """
    page = max(page, 1)
    tasks, total = await TaskStore(db).find(
        status=status_filter,
        priority=priority,
        assigned_to=current_user.id if assigned_to == "me" else None,
        offset=(page - 1) * PAGE_SIZE,
        limit=PAGE_SIZE,
    )

    people = await UserStore(db).get_many(
        [task.assigned_to for task in tasks] + [task.created_by for task in tasks]
    )
    items = [
        TaskListItem.from_task_with_users(
            task, people.get(task.assigned_to), people.get(task.created_by)
        )
        for task in tasks
    ]
    return TaskPage(
        tasks=items,
        pagination=Pagination(
            total=total,
            pages=math.ceil(total / PAGE_SIZE),
            current_page=page,
        ),
    )


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    payload: Optional[TaskUpdate] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partially update a task. Allowed for its assignee and for admins."""
    result = await apply_task_update(
        task_id,
        _get_update_data(payload),
        Caller.from_user(current_user),
        TaskStore(db),
        UserStore(db),
    )
    if not result.ok:
        raise HTTPException(status_code=result.failure.status_code, detail=result.failure.message)
    return result.task


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    _admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """Delete a task (admin only)."""
    if not await TaskStore(db).delete(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    logger.info("Task %s deleted by %s", task_id, _admin.id)
    return {"message": "Task deleted successfully"}
