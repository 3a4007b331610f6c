"""
Tests for the session-backed task and user stores
"""

import threading

import pytest
from sqlmodel import Session

from taskapi.models import TaskStatus
from taskapi.stores import TaskStore, UserStore


@pytest.mark.asyncio
async def test_save_runs_off_the_event_loop_thread(engine, make_user, make_task, monkeypatch):
    task = make_task(make_user())
    commit_threads = []
    real_commit = Session.commit

    def recording_commit(self):
        commit_threads.append(threading.get_ident())
        real_commit(self)

    monkeypatch.setattr(Session, "commit", recording_commit)
    with Session(engine) as db:
        store = TaskStore(db)
        loaded = await store.load_by_id(task.id)
        loaded.priority = 1
        await store.save(loaded)

    assert commit_threads
    assert threading.get_ident() not in commit_threads


@pytest.mark.asyncio
async def test_save_moves_updated_at_only_on_change(engine, make_user, make_task):
    task = make_task(make_user())
    with Session(engine) as db:
        store = TaskStore(db)
        loaded = await store.load_by_id(task.id)

        unchanged = await store.save(loaded)
        assert unchanged.updated_at == task.updated_at

        unchanged.title = "Renamed"
        changed = await store.save(unchanged)
        assert changed.updated_at > task.updated_at


@pytest.mark.asyncio
async def test_find_filters_and_counts(engine, make_user, make_task):
    ann = make_user()
    bob = make_user()
    make_task(ann, title="First")
    make_task(ann, title="Done", status=TaskStatus.COMPLETED)
    make_task(bob, title="Bob's")

    with Session(engine) as db:
        store = TaskStore(db)
        tasks, total = await store.find(assigned_to=ann.id, limit=1)
        assert total == 2
        assert len(tasks) == 1

        done, total = await store.find(status=TaskStatus.COMPLETED)
        assert [task.title for task in done] == ["Done"]
        assert total == 1


@pytest.mark.asyncio
async def test_delete_reports_missing_task(engine, make_user, make_task):
    task = make_task(make_user())
    with Session(engine) as db:
        store = TaskStore(db)
        assert await store.delete(task.id)
        assert not await store.delete(task.id)


@pytest.mark.asyncio
async def test_user_lookups(engine, make_user):
    ann = make_user(name="Ann")
    bob = make_user(name="Bob")
    with Session(engine) as db:
        users = UserStore(db)
        assert await users.exists_by_id(ann.id)
        assert not await users.exists_by_id("55555555-5555-4555-8555-555555555555")
        people = await users.get_many([ann.id, bob.id, ann.id])
        assert {user.name for user in people.values()} == {"Ann", "Bob"}
        assert await users.get_many([]) == {}
