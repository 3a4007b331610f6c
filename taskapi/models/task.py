from sqlmodel import SQLModel, Field
from datetime import datetime
from uuid import uuid4
import enum

from ..timeutils import UTCDateTime, utcnow


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Task(SQLModel, table=True):
    """Task assigned to a user.

    assigned_to and created_by hold user ids; existence of the assignee is
    checked when it is written, not enforced by a foreign key.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str = Field(max_length=100)
    description: str
    status: TaskStatus = Field(default=TaskStatus.TODO)
    priority: int = Field(default=3)
    due_date: datetime = Field(index=True, sa_type=UTCDateTime)
    assigned_to: str = Field(index=True)
    created_by: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
