from __future__ import annotations

from dataclasses import dataclass, field

from .combo_row import Row

"""History models for the row store.

A HistoryEntry is the snapshot taken *before* a mutation. ``affected_index``
names the row a single-row edit targeted (bulk replacements carry None).
"""

__all__ = [
    "HistoryEntry",
    "History",
]


@dataclass(frozen=True)
class HistoryEntry:
    rows: tuple[Row, ...]
    affected_index: int | None = None


@dataclass(frozen=True)
class History:
    """Linear undo/redo stacks.

    past: oldest first, newest last
    future: next redo first
    """
    past: tuple[HistoryEntry, ...] = field(default_factory=tuple)
    future: tuple[HistoryEntry, ...] = field(default_factory=tuple)

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)
