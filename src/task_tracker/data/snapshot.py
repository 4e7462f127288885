# src/task_tracker/data/snapshot.py

from __future__ import annotations

import logging
from bisect import insort
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from ..core.ports import Listener, Unsubscribe
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


def name_sort_key(name: str) -> tuple[str, str]:
    return (name.casefold(), name)


def sorted_names(names: Iterable[str]) -> tuple[str, ...]:
    return tuple(sorted(names, key=name_sort_key))


def merge_name(names: tuple[str, ...], name: str) -> tuple[str, ...]:
    """Insert name keeping alphabetical order; no-op if an equal key is present."""
    key = name.strip().casefold()
    if any(n.strip().casefold() == key for n in names):
        return names
    out = list(names)
    insort(out, name, key=name_sort_key)
    return tuple(out)


def drop_name(names: tuple[str, ...], name: str) -> tuple[str, ...]:
    key = name.strip().casefold()
    return tuple(n for n in names if n.strip().casefold() != key)


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Immutable view of the app data consumed by the UI.

    tasks keep backend order (newest creations prepended); aes / accounts are
    sorted name lists; ae_colors maps AE name -> resolved color.
    """

    hydrated: bool = False
    tasks: tuple[Task, ...] = ()
    aes: tuple[str, ...] = ()
    ae_colors: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    accounts: tuple[str, ...] = ()

    def evolve(self, **changes) -> Snapshot:
        if "ae_colors" in changes:
            changes["ae_colors"] = MappingProxyType(dict(changes["ae_colors"]))
        return replace(self, **changes)

    def find_task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None


class SnapshotStore:
    """
    Holds the current Snapshot and notifies subscribers on every commit.

    commit() is reserved for the data provider (and its resolver). Each commit
    is a single reference swap; listeners run synchronously in registration
    order. A failing listener does not stop the others: failures are logged
    and the first one is re-raised once everyone was notified.
    """

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._snapshot = initial or Snapshot()
        self._listeners: dict[Listener, None] = {}

    def get_snapshot(self) -> Snapshot:
        return self._snapshot

    def subscribe(self, listener: Listener) -> Unsubscribe:
        self._listeners[listener] = None

        def unsubscribe() -> None:
            self._listeners.pop(listener, None)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def commit(self, next_snapshot: Snapshot) -> None:
        self._snapshot = next_snapshot
        self._notify()

    def _notify(self) -> None:
        first_error: Exception | None = None
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.exception("Snapshot listener %r failed", listener)
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error
