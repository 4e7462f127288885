# src/task_tracker/tasks/ae_colors.py

"""
AE color assignment.

Every AE gets a color: the stored one when present, otherwise a deterministic
pick from a fixed palette keyed by the AE name. reconcile_colors() is the
best-effort pass that gives duplicate/blank AEs distinct palette colors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .task_models import AE

logger = logging.getLogger(__name__)

AE_MUTED_PALETTE: tuple[str, ...] = (
    "#CBD5E1",
    "#BFDBFE",
    "#A7F3D0",
    "#FED7AA",
    "#E9D5FF",
    "#FBCFE8",
    "#C7D2FE",
    "#BBF7D0",
    "#E2E8F0",
    "#DDD6FE",
)

if len(AE_MUTED_PALETTE) != 10 or len(set(AE_MUTED_PALETTE)) != len(AE_MUTED_PALETTE):
    raise RuntimeError("AE_MUTED_PALETTE must contain exactly 10 unique colors")


def _name_hash(name: str) -> int:
    s = name.strip().lower()
    raw = s.encode("utf-16-le")
    h = 0
    # UTF-16 code units; a non-BMP character contributes two.
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h


def pick_deterministic_color(name: str) -> str:
    return AE_MUTED_PALETTE[_name_hash(name) % len(AE_MUTED_PALETTE)]


def resolve_color(name: str, color: str | None = None) -> str:
    if color and color.strip():
        return color
    return pick_deterministic_color(name)


def resolve_colors(aes: Iterable[AE]) -> dict[str, str]:
    return {ae.name: resolve_color(ae.name, ae.color) for ae in aes}


@dataclass(frozen=True, slots=True)
class ColorChange:
    id: str
    name: str | None
    previous: str | None
    color: str


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """
    Outcome of a reconciliation pass.

    changes:    AEs that received a new color
    unresolved: ids of AEs still blank/duplicate because the palette ran out
    """

    changes: list[ColorChange] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.changes)

    @property
    def complete(self) -> bool:
        return not self.unresolved


def _precedence(ae: AE) -> tuple[bool, str, str]:
    # created_at ascending (missing last), then name.
    return (ae.created_at is None, ae.created_at or "", ae.name)


def _split_conflicts(ordered: list[AE]) -> tuple[set[str], list[AE]]:
    used: set[str] = set()
    conflicts: list[AE] = []
    for ae in ordered:
        c = (ae.color or "").strip()
        if not c or c in used:
            conflicts.append(ae)
            continue
        used.add(c)
    return used, conflicts


def find_color_conflicts(aes: Iterable[AE]) -> list[str]:
    """Ids of AEs whose color is blank or already held by an earlier AE."""
    _, conflicts = _split_conflicts(sorted(aes, key=_precedence))
    return [ae.id for ae in conflicts]


def reconcile_colors(aes: Iterable[AE]) -> ReconcileResult:
    """
    Give every AE with a blank or duplicate color an unused palette color.

    The first AE (by precedence) holding a color keeps it. Conflicting AEs are
    served in precedence order from the palette colors nobody holds yet; when
    the palette runs out the remaining conflicts are reported as unresolved.
    """
    ordered = sorted(aes, key=_precedence)
    used, reassign = _split_conflicts(ordered)

    available = [c for c in AE_MUTED_PALETTE if c not in used]

    changes: list[ColorChange] = []
    unresolved: list[str] = []
    for ae in reassign:
        if not available:
            unresolved.append(ae.id)
            continue
        nxt = available.pop(0)
        changes.append(ColorChange(id=ae.id, name=ae.name, previous=ae.color, color=nxt))
        used.add(nxt)

    if unresolved:
        logger.warning(
            "AE color palette exhausted during reconcile total=%d palette=%d unresolved=%d",
            len(ordered),
            len(AE_MUTED_PALETTE),
            len(unresolved),
        )

    return ReconcileResult(changes=changes, unresolved=unresolved)
