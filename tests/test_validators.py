"""
Tests for task field validators
"""

from datetime import datetime, timedelta, timezone

import pytest

from taskapi.models import TaskStatus
from taskapi.validators import (
    ASSIGNEE_ID_ERROR,
    ASSIGNEE_MISSING_ERROR,
    DESCRIPTION_ERROR,
    DUE_DATE_FORMAT_ERROR,
    DUE_DATE_PAST_ERROR,
    PRIORITY_ERROR,
    STATUS_ERROR,
    TITLE_ERROR,
    FieldResult,
    canonical_id,
    validate_assigned_to,
    validate_description,
    validate_due_date,
    validate_priority,
    validate_status,
    validate_title,
)

NOW = datetime(2023, 1, 1, 12, 0, tzinfo=timezone.utc)


class Users:
    def __init__(self, *ids):
        self.ids = set(ids)
        self.lookups = []

    async def exists_by_id(self, user_id):
        self.lookups.append(user_id)
        return user_id in self.ids


@pytest.mark.parametrize("title", ["", "   ", "a" * 101, "  " + "b" * 101 + " "])
def test_title_rejects_blank_and_long(title):
    assert validate_title(title) == FieldResult.fail(TITLE_ERROR)


@pytest.mark.parametrize("title", [123, None, {}, ["x"]])
def test_title_rejects_non_strings_with_same_message(title):
    assert validate_title(title).error == TITLE_ERROR


def test_title_accepts_and_strips():
    assert validate_title("Valid Title") == FieldResult.ok("Valid Title")
    assert validate_title("a" * 100).valid
    # length is measured after stripping
    assert validate_title("   " + "a" * 100 + "   ") == FieldResult.ok("a" * 100)


def test_description_rules():
    assert validate_description("") == FieldResult.fail(DESCRIPTION_ERROR)
    assert validate_description("   ").error == DESCRIPTION_ERROR
    assert validate_description(123).error == DESCRIPTION_ERROR
    assert validate_description(None).error == DESCRIPTION_ERROR
    assert validate_description(" Short ") == FieldResult.ok("Short")
    assert validate_description("a" * 1000).valid


@pytest.mark.parametrize("value", ["pending", "done", "TODO", "", 123, None, ["todo"]])
def test_status_rejects_unknown(value):
    assert validate_status(value) == FieldResult.fail(STATUS_ERROR)


def test_status_accepts_enum_values():
    assert validate_status("todo") == FieldResult.ok(TaskStatus.TODO)
    assert validate_status("in_progress").value is TaskStatus.IN_PROGRESS
    assert validate_status("completed").valid


@pytest.mark.parametrize("value", [2.5, 3.0, "3", 0, 6, -1, True, None])
def test_priority_rejects(value):
    assert validate_priority(value) == FieldResult.fail(PRIORITY_ERROR)


@pytest.mark.parametrize("value", [1, 3, 5])
def test_priority_accepts_range(value):
    assert validate_priority(value) == FieldResult.ok(value)


@pytest.mark.parametrize("value", ["definitely-not-a-date", "", "2023-13-01", None, True, [], {}])
def test_due_date_format_failures(value):
    assert validate_due_date(value, now=NOW) == FieldResult.fail(DUE_DATE_FORMAT_ERROR)


@pytest.mark.parametrize("value", ["2022-12-31T12:00:00Z", "2023-01-01T12:00:00+00:00", "2020-01-01"])
def test_due_date_not_in_future(value):
    assert validate_due_date(value, now=NOW) == FieldResult.fail(DUE_DATE_PAST_ERROR)


def test_due_date_future_returns_aware_utc():
    result = validate_due_date("2023-01-02T14:00:00+02:00", now=NOW)
    assert result.valid
    assert result.value == datetime(2023, 1, 2, 12, 0, tzinfo=timezone.utc)
    assert result.value.utcoffset() == timedelta(0)


def test_due_date_accepts_epoch_milliseconds():
    result = validate_due_date(1893456000000, now=NOW)
    assert result.value == datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["9999-12-31T23:00:00-05:00", "0001-01-01T00:00:00+05:00"])
def test_due_date_outside_utc_range_is_format_failure(value):
    assert validate_due_date(value, now=NOW) == FieldResult.fail(DUE_DATE_FORMAT_ERROR)


def test_due_date_defaults_to_current_time():
    assert validate_due_date("2000-01-01").error == DUE_DATE_PAST_ERROR
    assert validate_due_date("2999-01-01").valid


def test_canonical_id():
    raw = "3F2504E0-4F89-41D3-9A0C-0305E82C3301"
    assert canonical_id(raw) == raw.lower()
    assert canonical_id("not-an-id") is None
    assert canonical_id(42) is None


@pytest.mark.asyncio
async def test_assigned_to_malformed_skips_lookup():
    users = Users()
    result = await validate_assigned_to("not-an-id", users)
    assert result == FieldResult.fail(ASSIGNEE_ID_ERROR)
    assert users.lookups == []


@pytest.mark.asyncio
async def test_assigned_to_unknown_user():
    users = Users()
    user_id = "3f2504e0-4f89-41d3-9a0c-0305e82c3301"
    result = await validate_assigned_to(user_id, users)
    assert result == FieldResult.fail(ASSIGNEE_MISSING_ERROR)
    assert users.lookups == [user_id]


@pytest.mark.asyncio
async def test_assigned_to_existing_user_looks_up_every_time():
    user_id = "3f2504e0-4f89-41d3-9a0c-0305e82c3301"
    users = Users(user_id)
    assert await validate_assigned_to(user_id.upper(), users) == FieldResult.ok(user_id)
    assert await validate_assigned_to(user_id, users) == FieldResult.ok(user_id)
    assert users.lookups == [user_id, user_id]
