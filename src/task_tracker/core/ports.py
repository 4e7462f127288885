# src/task_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the data layer.

The data provider depends on a Protocol instead of the concrete httpx client.
This keeps the backend swappable and makes testing easier.
"""

from collections.abc import Callable
from typing import Any, Protocol

from ..tasks.ae_colors import ReconcileResult
from ..tasks.task_models import Entity, EntityKind, Task

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class TaskBackend(Protocol):
    """The REST collaborator: AE / Account reference data and tasks."""

    # Reference data (AE / Account share one shape)
    async def list_entities(self, kind: EntityKind) -> list[Entity]: ...
    async def create_entity(self, kind: EntityKind, name: str, color: str | None = None) -> Entity: ...
    async def delete_entity(self, kind: EntityKind, entity_id: str) -> None: ...
    async def reconcile_ae_colors(self) -> ReconcileResult: ...

    # Tasks
    async def list_tasks(self) -> list[Task]: ...
    async def create_task(self, payload: dict[str, Any]) -> Task: ...
    async def update_task(self, task_id: str, body: dict[str, Any]) -> Task: ...
    async def delete_task(self, task_id: str) -> None: ...
