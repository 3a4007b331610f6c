from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, List, Optional

from ..models import Task as TaskModel, TaskStatus, User


class _Payload(BaseModel):
    """Request fields are left untyped; the field validators own the rules."""

    class Config:
        populate_by_name = True


class TaskUpdate(_Payload):
    """Partial update. Only keys the client sent show up in exclude_unset dumps."""
    title: Any = None
    description: Any = None
    status: Any = None
    priority: Any = None
    due_date: Any = Field(default=None, alias="dueDate")
    assigned_to: Any = Field(default=None, alias="assignedTo")


class TaskCreate(TaskUpdate):
    """Schema for creating new tasks."""
    pass


class UserSummary(BaseModel):
    id: str
    name: str
    email: str


class CreatorSummary(BaseModel):
    id: str
    name: str


class TaskRead(BaseModel):
    """Task as returned to clients, with the assignee expanded."""
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: int
    due_date: datetime = Field(alias="dueDate")
    assigned_to: Optional[UserSummary] = Field(default=None, alias="assignedTo")
    created_by: str = Field(alias="createdBy")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    class Config:
        populate_by_name = True

    @classmethod
    def from_task(cls, task: TaskModel, assignee: Optional[User], **extra) -> "TaskRead":
        fields = dict(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            assigned_to=_summarize(assignee),
            created_by=task.created_by,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )
        fields.update(extra)
        return cls(**fields)


class TaskListItem(TaskRead):
    """List entries also expand the creator's name."""
    created_by: Optional[CreatorSummary] = Field(default=None, alias="createdBy")

    @classmethod
    def from_task_with_users(
        cls, task: TaskModel, assignee: Optional[User], creator: Optional[User]
    ) -> "TaskListItem":
        summary = CreatorSummary(id=creator.id, name=creator.name) if creator else None
        return cls.from_task(task, assignee, created_by=summary)


class Pagination(BaseModel):
    total: int
    pages: int
    current_page: int = Field(alias="currentPage")

    class Config:
        populate_by_name = True


class TaskPage(BaseModel):
    tasks: List[TaskListItem]
    pagination: Pagination


def _summarize(user: Optional[User]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(id=user.id, name=user.name, email=user.email)
