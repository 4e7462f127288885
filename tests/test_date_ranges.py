# tests/test_date_ranges.py

from __future__ import annotations

import datetime as dt

import pytest

from task_tracker.tasks.date_ranges import (
    chicago_today_ymd,
    get_chicago_week_range,
    is_due_this_week,
    is_overdue,
)
from task_tracker.tasks.task_models import TaskStatus

from .fakes import make_task

UTC = dt.timezone.utc
# Wednesday 2026-10-14, noon in Chicago (CDT, UTC-5).
WEDNESDAY = dt.datetime(2026, 10, 14, 17, 0, tzinfo=UTC)


def test_today_uses_chicago_calendar_date() -> None:
    # 03:00 UTC on the 13th is still the evening of the 12th in Chicago.
    assert chicago_today_ymd(dt.datetime(2026, 10, 13, 3, 0, tzinfo=UTC)) == "2026-10-12"
    assert chicago_today_ymd(WEDNESDAY) == "2026-10-14"


def test_naive_now_is_treated_as_utc() -> None:
    assert chicago_today_ymd(dt.datetime(2026, 10, 13, 3, 0)) == "2026-10-12"


def test_week_range_midweek() -> None:
    assert get_chicago_week_range(WEDNESDAY) == ("2026-10-12", "2026-10-19")


def test_week_range_on_monday_starts_today() -> None:
    monday_evening = dt.datetime(2026, 10, 13, 3, 0, tzinfo=UTC)  # Mon 22:00 Chicago
    assert get_chicago_week_range(monday_evening) == ("2026-10-12", "2026-10-19")


def test_week_range_sunday_night_belongs_to_previous_week() -> None:
    sunday_night = dt.datetime(2026, 10, 12, 4, 0, tzinfo=UTC)  # Sun 23:00 Chicago
    assert get_chicago_week_range(sunday_night) == ("2026-10-05", "2026-10-12")


@pytest.mark.parametrize("offset_hours", range(0, 24 * 9, 7))
def test_week_range_is_seven_days_starting_monday(offset_hours: int) -> None:
    now = dt.datetime(2026, 10, 28, 0, 0, tzinfo=UTC) + dt.timedelta(hours=offset_hours)  # spans DST end
    start, end = get_chicago_week_range(now)
    start_d = dt.date.fromisoformat(start)
    end_d = dt.date.fromisoformat(end)
    assert start_d.weekday() == 0
    assert (end_d - start_d).days == 7
    assert start <= chicago_today_ymd(now) < end


def test_overdue_requires_past_due_date() -> None:
    assert is_overdue(make_task("a", due_date="2026-10-13"), WEDNESDAY)
    assert not is_overdue(make_task("b", due_date="2026-10-14"), WEDNESDAY)
    assert not is_overdue(make_task("c"), WEDNESDAY)


@pytest.mark.parametrize("due", ["1999-01-01", "2026-10-13", "2026-10-14", "2030-01-01", None])
def test_done_task_is_never_overdue(due: str | None) -> None:
    assert not is_overdue(make_task("done", status=TaskStatus.DONE, due_date=due), WEDNESDAY)


def test_due_this_week_window() -> None:
    assert is_due_this_week(make_task("a", due_date="2026-10-12"), WEDNESDAY)
    assert is_due_this_week(make_task("b", due_date="2026-10-18"), WEDNESDAY)
    assert not is_due_this_week(make_task("c", due_date="2026-10-19"), WEDNESDAY)
    assert not is_due_this_week(make_task("d"), WEDNESDAY)
