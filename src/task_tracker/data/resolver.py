# src/task_tracker/data/resolver.py

"""
Entity resolver: free-text AE / Account names -> canonical ids.

Resolve-or-create protocol (one bounded read-repair):
1. cache hit (case-insensitive key) -> cached id
2. miss -> POST the entity
3. 409 (another client won the insert race) -> re-fetch the full list once,
   rebuild the cache and adopt the winner's id; if the name is still
   missing, re-raise the original conflict

Every successful create or refresh is committed to the snapshot store so
dropdowns see new names immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.errors import ConflictError, ResolutionError, UnavailableError
from ..core.ports import TaskBackend
from ..tasks.ae_colors import resolve_color, resolve_colors
from ..tasks.task_models import AE, Entity, EntityKind
from .snapshot import SnapshotStore, drop_name, merge_name, sorted_names

logger = logging.getLogger(__name__)


def normalize_key(name: str) -> str:
    return name.strip().casefold()


class EntityResolver:
    def __init__(self, backend: TaskBackend, store: SnapshotStore) -> None:
        self._backend = backend
        self._store = store
        self._cache: dict[EntityKind, dict[str, Entity]] = {k: {} for k in EntityKind}

    # ---- cache ----

    def prime(self, kind: EntityKind, records: Iterable[Entity]) -> None:
        """Replace the cache for kind (no snapshot commit)."""
        self._cache[kind] = {normalize_key(r.name): r for r in records}

    def lookup(self, kind: EntityKind, name: str) -> Entity | None:
        return self._cache[kind].get(normalize_key(name))

    def records(self, kind: EntityKind) -> list[Entity]:
        return list(self._cache[kind].values())

    def forget(self, kind: EntityKind, name: str) -> None:
        """Drop name from the cache and the snapshot lists."""
        self._cache[kind].pop(normalize_key(name), None)
        snap = self._store.get_snapshot()
        if kind is EntityKind.AE:
            key = normalize_key(name)
            colors = {n: c for n, c in snap.ae_colors.items() if normalize_key(n) != key}
            self._store.commit(snap.evolve(aes=drop_name(snap.aes, name), ae_colors=colors))
        else:
            self._store.commit(snap.evolve(accounts=drop_name(snap.accounts, name)))

    # ---- resolve-or-create ----

    async def ensure_id_by_name(self, kind: EntityKind, name: str) -> str:
        clean = (name or "").strip()
        if not clean:
            raise ResolutionError(kind.value, name, f"{kind.label} name is required")

        existing = self.lookup(kind, clean)
        if existing is not None:
            return existing.id

        try:
            created = await self.create(kind, clean)
        except ConflictError as conflict:
            logger.info("%s %r already exists; refreshing cache", kind.label, clean)
            try:
                await self.refresh(kind)
            except UnavailableError as e:
                raise ResolutionError(
                    kind.value, clean, f"Could not refresh {kind.label} list: {e.message}"
                ) from e
            found = self.lookup(kind, clean)
            if found is None:
                raise conflict
            return found.id
        except UnavailableError as e:
            raise ResolutionError(
                kind.value, clean, f"Could not resolve {kind.label} {clean!r}: {e.message}"
            ) from e

        return created.id

    async def create(self, kind: EntityKind, name: str) -> Entity:
        """Insert a new entity; conflicts propagate to the caller."""
        created = await self._backend.create_entity(kind, name.strip())
        self._cache[kind][normalize_key(created.name)] = created
        logger.info("%s created id=%s name=%r", kind.label, created.id, created.name)

        snap = self._store.get_snapshot()
        if kind is EntityKind.AE:
            colors = dict(snap.ae_colors)
            colors[created.name] = resolve_color(
                created.name, created.color if isinstance(created, AE) else None
            )
            self._store.commit(snap.evolve(aes=merge_name(snap.aes, created.name), ae_colors=colors))
        else:
            self._store.commit(snap.evolve(accounts=merge_name(snap.accounts, created.name)))
        return created

    async def refresh(self, kind: EntityKind) -> list[Entity]:
        """Re-fetch the full list for kind, rebuild the cache and commit the names."""
        records = await self._backend.list_entities(kind)
        self.prime(kind, records)

        snap = self._store.get_snapshot()
        names = sorted_names(r.name for r in records)
        if kind is EntityKind.AE:
            aes = [r for r in records if isinstance(r, AE)]
            self._store.commit(snap.evolve(aes=names, ae_colors=resolve_colors(aes)))
        else:
            self._store.commit(snap.evolve(accounts=names))
        return records
