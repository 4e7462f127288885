# src/task_tracker/tasks/date_ranges.py

"""
Calendar helpers pinned to the team's reference timezone (America/Chicago).

All comparisons are done on zero-padded YYYY-MM-DD strings, which order
lexicographically the same way the dates do. "Today" is the Chicago calendar
date of `now`, not a wall-clock instant.
"""

from __future__ import annotations

import datetime as dt
from zoneinfo import ZoneInfo

from .task_models import Task, TaskStatus

REFERENCE_TZ_NAME = "America/Chicago"
REFERENCE_TZ = ZoneInfo(REFERENCE_TZ_NAME)


def _aware(now: dt.datetime | None) -> dt.datetime:
    if now is None:
        return dt.datetime.now(dt.timezone.utc)
    if now.tzinfo is None:
        # Naive input is treated as UTC.
        return now.replace(tzinfo=dt.timezone.utc)
    return now


def chicago_today(now: dt.datetime | None = None) -> dt.date:
    return _aware(now).astimezone(REFERENCE_TZ).date()


def chicago_today_ymd(now: dt.datetime | None = None) -> str:
    return chicago_today(now).isoformat()


def get_chicago_week_range(now: dt.datetime | None = None) -> tuple[str, str]:
    """
    Return the [start, end) week window containing today's Chicago date.

    start is the most recent Monday (today if today is Monday), end = start + 7 days.
    """
    today = chicago_today(now)
    start = today - dt.timedelta(days=today.weekday())
    end = start + dt.timedelta(days=7)
    return start.isoformat(), end.isoformat()


def is_overdue(task: Task, now: dt.datetime | None = None) -> bool:
    if not task.due_date:
        return False
    if task.status is TaskStatus.DONE:
        return False
    return task.due_date < chicago_today_ymd(now)


def is_due_this_week(task: Task, now: dt.datetime | None = None) -> bool:
    """Raw week-window membership; callers combine it with is_overdue as needed."""
    if not task.due_date:
        return False
    start, end = get_chicago_week_range(now)
    return start <= task.due_date < end
