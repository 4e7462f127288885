# src/task_tracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Literal, TypedDict

ALL = "ALL"


class TaskStatus(StrEnum):
    """Task lifecycle status as stored by the backend."""

    BACKLOG = "BACKLOG"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING = "WAITING"
    DONE = "DONE"

    @classmethod
    def from_api(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.BACKLOG
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return cls.BACKLOG


class EntityKind(StrEnum):
    """Reference-data collections; the value is the REST collection path."""

    AE = "aes"
    ACCOUNT = "accounts"

    @property
    def label(self) -> str:
        return "AE" if self is EntityKind.AE else "Account"


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s.strip() else None


def _pick(raw: dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in raw:
            return raw[k]
    return None


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    ae: str
    account: str
    status: TaskStatus
    created_at: str

    description: str | None = None
    due_date: str | None = None
    completed_at: str | None = None
    updated_at: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status is TaskStatus.DONE

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Task:
        """Build a Task from the backend view-model (camelCase, snake_case tolerated)."""
        due = _opt_str(_pick(raw, "dueDate", "due_date"))
        return cls(
            id=str(raw["id"]),
            title=str(raw.get("title") or ""),
            ae=str(raw.get("ae") or ""),
            account=str(raw.get("account") or ""),
            status=TaskStatus.from_api(raw.get("status")),
            created_at=str(_pick(raw, "createdAt", "created_at") or ""),
            description=_opt_str(raw.get("description")),
            due_date=due[:10] if due else None,
            completed_at=_opt_str(_pick(raw, "completedAt", "completed_at")),
            updated_at=_opt_str(_pick(raw, "updatedAt", "updated_at")),
        )


@dataclass(frozen=True, slots=True)
class AE:
    id: str
    name: str
    color: str | None = None
    created_at: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> AE:
        return cls(
            id=str(raw["id"]),
            name=str(raw["name"]),
            color=_opt_str(raw.get("color")),
            created_at=_opt_str(_pick(raw, "created_at", "createdAt")),
        )


@dataclass(frozen=True, slots=True)
class Account:
    id: str
    name: str

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Account:
        return cls(id=str(raw["id"]), name=str(raw["name"]))


Entity = AE | Account


def entity_from_api(kind: EntityKind, raw: dict[str, Any]) -> Entity:
    if kind is EntityKind.AE:
        return AE.from_api(raw)
    return Account.from_api(raw)


@dataclass(frozen=True, slots=True)
class TaskFilters:
    """
    Filter criteria for the task list.

    ae / account / status use the "ALL" sentinel to mean "no constraint".
    due_this_week and overdue are exclusive toggles in the UI; when both are
    set, due_this_week wins.
    """

    query: str = ""
    ae: str = ALL
    account: str = ALL
    status: TaskStatus | Literal["ALL"] = ALL
    due_this_week: bool = False
    overdue: bool = False

    @property
    def has_date_filter(self) -> bool:
        return self.due_this_week or self.overdue


@dataclass(frozen=True, slots=True)
class TaskCreateInput:
    title: str
    ae: str
    account: str | None = None
    description: str | None = None
    status: TaskStatus = TaskStatus.BACKLOG
    due_date: str | None = None


class TaskPatch(TypedDict, total=False):
    """
    Partial task update. Only present keys are sent.

    - due_date=None clears the due date
    - account="" clears the account
    - ae / account are display names, translated to ids before sending
    """

    title: str
    description: str | None
    ae: str
    account: str
    status: TaskStatus
    due_date: str | None
