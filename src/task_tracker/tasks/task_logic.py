# src/task_tracker/tasks/task_logic.py

"""
Task filter / sort engine.

Pure functions over sequences of Task. Nothing here touches the network or the
snapshot store, so the UI layer can call them on every render.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import StrEnum

from .date_ranges import get_chicago_week_range, is_overdue
from .task_models import ALL, Task, TaskFilters, TaskStatus

_STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.BACKLOG: "Backlog",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.WAITING: "Waiting",
    TaskStatus.DONE: "Done",
}


class SortStrategy(StrEnum):
    DUE_DATE = "due_date"
    IN_PROGRESS_FIRST = "in_progress_first"


@dataclass(frozen=True, slots=True)
class TaskGroups:
    active: list[Task]
    completed: list[Task]


def status_label(status: TaskStatus) -> str:
    return _STATUS_LABELS[status]


def all_statuses() -> list[TaskStatus]:
    return list(TaskStatus)


def _utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def apply_status_logic(task: Task, next_status: TaskStatus, now_iso: str | None = None) -> Task:
    """
    Local status transition, mirroring what the backend does on PATCH.

    Entering DONE keeps an existing completed_at (or stamps now);
    any other status clears it.
    """
    if next_status is TaskStatus.DONE:
        return replace(
            task,
            status=next_status,
            completed_at=task.completed_at or now_iso or _utc_now_iso(),
        )
    return replace(task, status=next_status, completed_at=None)


def _matches_basic(task: Task, f: TaskFilters, q: str) -> bool:
    if q and q not in task.title.lower():
        return False
    if f.ae != ALL and task.ae != f.ae:
        return False
    if f.account != ALL and task.account != f.account:
        return False
    if f.status != ALL and task.status != f.status:
        return False
    return True


def filter_tasks(
    tasks: Iterable[Task],
    filters: TaskFilters | None = None,
    now: dt.datetime | None = None,
) -> list[Task]:
    """
    Apply text/ae/account/status filters (AND), then the date filters.

    When a date filter is active and status is "ALL", DONE tasks are dropped
    first. If both date filters are set, due_this_week is applied and overdue
    is ignored.
    """
    f = filters or TaskFilters()
    q = (f.query or "").strip().lower()

    base = [t for t in tasks if _matches_basic(t, f, q)]

    if f.has_date_filter and f.status == ALL:
        base = [t for t in base if t.status is not TaskStatus.DONE]

    if f.due_this_week:
        start, end = get_chicago_week_range(now)
        return [
            t
            for t in base
            if t.due_date and not is_overdue(t, now) and start <= t.due_date < end
        ]

    if f.overdue:
        return [t for t in base if is_overdue(t, now)]

    return base


def _active_key(task: Task) -> tuple[bool, str]:
    # Missing due dates sort last.
    return (task.due_date is None, task.due_date or "")


def _sort_active(tasks: Sequence[Task], strategy: SortStrategy) -> list[Task]:
    # Two stable passes: created_at descending, then the primary key ascending.
    out = sorted(tasks, key=lambda t: t.created_at, reverse=True)
    if strategy is SortStrategy.IN_PROGRESS_FIRST:
        return sorted(out, key=lambda t: (t.status is not TaskStatus.IN_PROGRESS, *_active_key(t)))
    return sorted(out, key=_active_key)


def _sort_completed(tasks: Sequence[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: t.completed_at or t.created_at, reverse=True)


def sort_tasks(
    tasks: Iterable[Task],
    strategy: SortStrategy = SortStrategy.DUE_DATE,
) -> TaskGroups:
    """
    Partition into active / completed and order each part.

    active:    due_date ascending (None last), then created_at descending
               (IN_PROGRESS_FIRST puts in-progress tasks ahead of that ordering)
    completed: completed_at (falling back to created_at) descending
    """
    items = list(tasks)
    active = [t for t in items if not t.is_done]
    completed = [t for t in items if t.is_done]
    return TaskGroups(active=_sort_active(active, strategy), completed=_sort_completed(completed))


def build_task_view(
    tasks: Iterable[Task],
    filters: TaskFilters | None = None,
    now: dt.datetime | None = None,
) -> TaskGroups:
    """Filter then sort the way the task list page does."""
    f = filters or TaskFilters()
    filtered = filter_tasks(tasks, f, now)
    strategy = SortStrategy.DUE_DATE if f.has_date_filter else SortStrategy.IN_PROGRESS_FIRST
    return sort_tasks(filtered, strategy)


def _distinct_sorted(values: Iterable[str]) -> list[str]:
    return sorted({v for v in values if v}, key=lambda s: (s.casefold(), s))


def derive_aes(tasks: Iterable[Task]) -> list[str]:
    return _distinct_sorted(t.ae for t in tasks)


def derive_accounts(tasks: Iterable[Task]) -> list[str]:
    return _distinct_sorted(t.account for t in tasks)
