from typing import Dict, Iterable, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .models import Task, TaskStatus, User
from .timeutils import utcnow


class TaskStore:
    """Task persistence over a request-scoped session.

    The session is synchronous, so every awaitable method runs its queries
    in the threadpool and yields the event loop while the database works.
    """

    def __init__(self, db: Session):
        self.db = db

    async def load_by_id(self, task_id: str) -> Optional[Task]:
        return await run_in_threadpool(self.db.get, Task, task_id)

    async def save(self, task: Task) -> Task:
        """Write the task; updated_at only moves when a column changed.

        The session is rolled back and the error re-raised on failure.
        """
        return await run_in_threadpool(self._save, task)

    async def delete(self, task_id: str) -> bool:
        return await run_in_threadpool(self._delete, task_id)

    async def find(
        self,
        status: Optional[TaskStatus] = None,
        priority: Optional[int] = None,
        assigned_to: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Task], int]:
        """Newest-first page of tasks matching the filters, plus the total count."""
        conditions = []
        if status is not None:
            conditions.append(Task.status == status)
        if priority is not None:
            conditions.append(Task.priority == priority)
        if assigned_to is not None:
            conditions.append(Task.assigned_to == assigned_to)
        return await run_in_threadpool(self._find, conditions, offset, limit)

    def _save(self, task: Task) -> Task:
        if self.db.is_modified(task):
            task.updated_at = utcnow()
        self.db.add(task)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(task)
        return task

    def _delete(self, task_id: str) -> bool:
        task = self.db.get(Task, task_id)
        if not task:
            return False
        self.db.delete(task)
        self.db.commit()
        return True

    def _find(self, conditions, offset: int, limit: int) -> Tuple[List[Task], int]:
        query = select(Task).where(*conditions).order_by(Task.created_at.desc())
        tasks = self.db.exec(query.offset(offset).limit(limit)).all()

        total = self.db.exec(select(func.count()).select_from(Task).where(*conditions)).one()
        return list(tasks), total


class UserStore:
    """User lookups needed by the task endpoints."""

    def __init__(self, db: Session):
        self.db = db

    async def exists_by_id(self, user_id: str) -> bool:
        return await run_in_threadpool(self._exists, user_id)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        return await run_in_threadpool(self.db.get, User, user_id)

    async def get_many(self, user_ids: Iterable[str]) -> Dict[str, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        users = await run_in_threadpool(self._fetch_many, ids)
        return {user.id: user for user in users}

    def _exists(self, user_id: str) -> bool:
        # Always query; the identity map may hold a stale row
        return self.db.exec(select(User.id).where(User.id == user_id)).first() is not None

    def _fetch_many(self, ids) -> List[User]:
        return list(self.db.exec(select(User).where(User.id.in_(ids))).all())
