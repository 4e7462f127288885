# src/task_tracker/data/provider.py

"""
Data provider: the composition root between UI code and the REST backend.

Owns the snapshot store and the entity resolver. Every mutation:
- waits for hydration (one shared in-flight hydration per provider),
- translates display names to ids through the resolver,
- calls the backend,
- commits a new snapshot only after the backend confirmed the change.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import re
from dataclasses import replace
from enum import StrEnum
from typing import Any, TypeVar, cast

from ..core.errors import BackendError, NotFoundError, TaskValidationError
from ..core.ports import Listener, TaskBackend, Unsubscribe
from ..tasks.ae_colors import ReconcileResult, find_color_conflicts, resolve_colors
from ..tasks.task_logic import TaskGroups, build_task_view, filter_tasks
from ..tasks.task_models import (
    AE,
    Account,
    EntityKind,
    Task,
    TaskCreateInput,
    TaskFilters,
    TaskPatch,
)
from .resolver import EntityResolver
from .snapshot import Snapshot, SnapshotStore, sorted_names

logger = logging.getLogger(__name__)

T = TypeVar("T")

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class HydrationPhase(StrEnum):
    UNHYDRATED = "unhydrated"
    HYDRATING = "hydrating"
    HYDRATED = "hydrated"


def _check_due_date(value: str | None) -> None:
    if value is None:
        return
    if not _YMD_RE.match(value):
        raise TaskValidationError("due_date", "due_date must be YYYY-MM-DD")
    try:
        dt.date.fromisoformat(value)
    except ValueError as e:
        raise TaskValidationError("due_date", f"Invalid due_date: {value}") from e


class DataProvider:
    def __init__(self, backend: TaskBackend, *, store: SnapshotStore | None = None) -> None:
        self._backend = backend
        self._store = store or SnapshotStore()
        self._resolver = EntityResolver(backend, self._store)
        self._init_task: asyncio.Task[None] | None = None
        self._phase = HydrationPhase.UNHYDRATED

    # ---- read side ----

    @property
    def phase(self) -> HydrationPhase:
        return self._phase

    @property
    def resolver(self) -> EntityResolver:
        return self._resolver

    def get_snapshot(self) -> Snapshot:
        return self._store.get_snapshot()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        return self._store.subscribe(listener)

    # ---- hydration ----

    async def ensure_hydrated(self) -> None:
        """
        Hydrate once. Concurrent callers share the same in-flight task; a
        finished hydration is never repeated, even if it degraded.
        """
        if self._init_task is None:
            self._phase = HydrationPhase.HYDRATING
            self._init_task = asyncio.ensure_future(self._hydrate())
        await self._init_task

    async def _safe_fetch(self, label: str, coro, fallback: T) -> T:
        try:
            return await coro
        except BackendError as e:
            # Keep the app usable while the backend is (partially) unavailable.
            logger.warning("Hydration fetch failed for %s: %s", label, e.message)
            return fallback

    async def _hydrate(self) -> None:
        aes, accounts, tasks = await asyncio.gather(
            self._safe_fetch("aes", self._backend.list_entities(EntityKind.AE), []),
            self._safe_fetch("accounts", self._backend.list_entities(EntityKind.ACCOUNT), []),
            self._safe_fetch("tasks", self._backend.list_tasks(), []),
        )

        self._resolver.prime(EntityKind.AE, aes)
        self._resolver.prime(EntityKind.ACCOUNT, accounts)

        ae_records = [a for a in aes if isinstance(a, AE)]
        self._phase = HydrationPhase.HYDRATED
        self._store.commit(
            self._store.get_snapshot().evolve(
                hydrated=True,
                tasks=tuple(tasks),
                aes=sorted_names(a.name for a in aes),
                ae_colors=resolve_colors(ae_records),
                accounts=sorted_names(a.name for a in accounts),
            )
        )
        logger.info(
            "Hydrated tasks=%d aes=%d accounts=%d", len(tasks), len(aes), len(accounts)
        )

    # ---- task queries ----

    async def get_tasks(
        self, filters: TaskFilters | None = None, now: dt.datetime | None = None
    ) -> list[Task]:
        await self.ensure_hydrated()
        return filter_tasks(self.get_snapshot().tasks, filters, now)

    async def get_task_view(
        self, filters: TaskFilters | None = None, now: dt.datetime | None = None
    ) -> TaskGroups:
        await self.ensure_hydrated()
        return build_task_view(self.get_snapshot().tasks, filters, now)

    # ---- task mutations ----

    async def create_task(self, data: TaskCreateInput) -> Task:
        await self.ensure_hydrated()

        title = (data.title or "").strip()
        if not title:
            raise TaskValidationError("title", "title is required")
        ae_name = (data.ae or "").strip()
        if not ae_name:
            raise TaskValidationError("ae", "ae is required")
        account_name = (data.account or "").strip() or None
        _check_due_date(data.due_date)

        ae_id = await self._resolver.ensure_id_by_name(EntityKind.AE, ae_name)
        account_id = (
            await self._resolver.ensure_id_by_name(EntityKind.ACCOUNT, account_name)
            if account_name
            else None
        )

        payload: dict[str, Any] = {
            "title": title,
            "ae_id": ae_id,
            "status": str(data.status),
        }
        if data.description is not None:
            payload["description"] = data.description
        if account_id is not None:
            payload["account_id"] = account_id
        if data.due_date:
            payload["due_date"] = data.due_date

        try:
            created = await self._backend.create_task(payload)
        except BackendError as e:
            logger.error(
                "create_task failed status=%s message=%s body=%r", e.status, e.message, e.body
            )
            raise

        snap = self._store.get_snapshot()
        self._store.commit(snap.evolve(tasks=(created, *snap.tasks)))
        logger.info("Task created id=%s ae=%r", created.id, created.ae)
        return created

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task | None:
        """Apply a partial update. Returns None when the task no longer exists."""
        await self.ensure_hydrated()

        body: dict[str, Any] = {}
        if "title" in patch:
            body["title"] = patch["title"]
        if "description" in patch:
            body["description"] = patch["description"]
        if "status" in patch:
            body["status"] = str(patch["status"])
        if "due_date" in patch:
            _check_due_date(patch["due_date"])
            body["due_date"] = patch["due_date"]

        if "ae" in patch:
            ae_name = (patch["ae"] or "").strip()
            if not ae_name:
                raise TaskValidationError("ae", "ae is required")
            body["ae_id"] = await self._resolver.ensure_id_by_name(EntityKind.AE, ae_name)

        if "account" in patch:
            account = (patch["account"] or "").strip()
            body["account_id"] = (
                await self._resolver.ensure_id_by_name(EntityKind.ACCOUNT, account) if account else None
            )

        try:
            updated = await self._backend.update_task(task_id, body)
        except NotFoundError:
            logger.info("update_task: task %s no longer exists", task_id)
            return None

        snap = self._store.get_snapshot()
        self._store.commit(
            snap.evolve(tasks=tuple(updated if t.id == task_id else t for t in snap.tasks))
        )
        return updated

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns False when it was already gone."""
        await self.ensure_hydrated()

        try:
            await self._backend.delete_task(task_id)
        except NotFoundError:
            logger.info("delete_task: task %s already deleted", task_id)
            return False

        snap = self._store.get_snapshot()
        self._store.commit(snap.evolve(tasks=tuple(t for t in snap.tasks if t.id != task_id)))
        return True

    # ---- reference data ----

    async def get_aes(self) -> tuple[str, ...]:
        await self.ensure_hydrated()
        return self.get_snapshot().aes

    async def get_accounts(self) -> tuple[str, ...]:
        await self.ensure_hydrated()
        return self.get_snapshot().accounts

    async def create_ae(self, name: str) -> AE:
        await self.ensure_hydrated()
        created = await self._resolver.create(EntityKind.AE, self._require_name(EntityKind.AE, name))
        return cast(AE, created)

    async def create_account(self, name: str) -> Account:
        await self.ensure_hydrated()
        created = await self._resolver.create(
            EntityKind.ACCOUNT, self._require_name(EntityKind.ACCOUNT, name)
        )
        return cast(Account, created)

    async def delete_ae(self, name: str) -> bool:
        return await self._delete_entity(EntityKind.AE, name)

    async def delete_account(self, name: str) -> bool:
        return await self._delete_entity(EntityKind.ACCOUNT, name)

    async def reconcile_ae_colors(self) -> ReconcileResult:
        await self.ensure_hydrated()
        reported = await self._backend.reconcile_ae_colors()
        records = [r for r in await self._resolver.refresh(EntityKind.AE) if isinstance(r, AE)]

        # The backend only reports what it changed; conflicts left over are
        # read back from the refreshed list.
        names = {r.id: r.name for r in records}
        result = ReconcileResult(
            changes=[replace(c, name=c.name or names.get(c.id)) for c in reported.changes],
            unresolved=find_color_conflicts(records),
        )
        if result.unresolved:
            logger.warning("AE color reconcile left %d conflicts unresolved", len(result.unresolved))
        logger.info("AE colors reconciled changed=%d", result.changed)
        return result

    @staticmethod
    def _require_name(kind: EntityKind, name: str) -> str:
        clean = (name or "").strip()
        if not clean:
            raise TaskValidationError("name", f"{kind.label} name is required")
        return clean

    async def _delete_entity(self, kind: EntityKind, name: str) -> bool:
        """
        Delete by display name.

        Unknown name -> False without a request. Backend 404 -> False and the
        stale local entry is dropped. In-use (409) propagates as ConflictError.
        """
        await self.ensure_hydrated()
        record = self._resolver.lookup(kind, name)
        if record is None:
            return False

        try:
            await self._backend.delete_entity(kind, record.id)
        except NotFoundError:
            logger.info("%s %r was already deleted", kind.label, record.name)
            self._resolver.forget(kind, record.name)
            return False

        self._resolver.forget(kind, record.name)
        logger.info("%s deleted id=%s name=%r", kind.label, record.id, record.name)
        return True
