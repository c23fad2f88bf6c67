from __future__ import annotations

import logging
from collections.abc import Iterable

from combo_tools.models.combo_row import Row
from combo_tools.models.history import History, HistoryEntry
from combo_tools.models.results import ValidationError

"""Row store with linear undo/redo.

The store owns the current row sequence and its history. Every mutation
pushes the pre-mutation snapshot onto ``past`` and clears ``future``;
undo/redo move entries between the two stacks. Snapshots are tuples of
frozen rows, so handing them out never exposes mutable state.

Single writer, synchronous; no locking.
"""

__all__ = [
    "RowStore",
    "validate_new_row",
]

logger = logging.getLogger(__name__)


def validate_new_row(rows: Iterable[Row], row: Row) -> None:
    """Check a row about to be created against the current snapshot.

    Raises:
        ValidationError: empty product SKU, or SKU already present
    """
    sku = row.product_sku.strip()
    if not sku:
        raise ValidationError("product SKU is required")
    if any(r.product_sku.strip() == sku for r in rows):
        raise ValidationError(f"product SKU already exists: {sku}")


class RowStore:
    """Versioned in-memory table of combo rows.

    ``max_history`` bounds ``past`` (oldest entries are dropped); None keeps
    unbounded history.
    """

    def __init__(self, rows: Iterable[Row] = (), max_history: int | None = None) -> None:
        self._rows: tuple[Row, ...] = tuple(rows)
        self._history = History()
        self._max_history = max_history
        self.last_undo_redo_index: int | None = None

    # -- read side ---------------------------------------------------------------
    @property
    def rows(self) -> tuple[Row, ...]:
        return self._rows

    @property
    def history(self) -> History:
        return self._history

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, index: int) -> Row:
        return self._rows[index]

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    # -- mutations ---------------------------------------------------------------
    def _commit(self, rows: tuple[Row, ...], affected_index: int | None) -> None:
        past = self._history.past + (HistoryEntry(self._rows, affected_index),)
        if self._max_history is not None and len(past) > self._max_history:
            past = past[len(past) - self._max_history :]
        self._history = History(past=past, future=())
        self._rows = rows
        self.last_undo_redo_index = None

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._rows):
            raise IndexError(f"row index out of range: {index} (rows={len(self._rows)})")

    def replace_all(self, rows: Iterable[Row], affected_index: int | None = None) -> None:
        self._commit(tuple(rows), affected_index)
        logger.debug("replace_all rows=%d", len(self._rows))

    def update_row(self, index: int, row: Row) -> None:
        self._check_index(index)
        rows = list(self._rows)
        rows[index] = row
        self._commit(tuple(rows), index)

    def delete_row(self, index: int) -> None:
        self._check_index(index)
        rows = list(self._rows)
        del rows[index]
        self._commit(tuple(rows), index)

    def add_row(self, row: Row) -> int:
        """Validate and append ``row``; returns its index."""
        validate_new_row(self._rows, row)
        index = len(self._rows)
        self._commit(self._rows + (row,), index)
        return index

    def clear(self) -> None:
        self.replace_all(())

    def undo(self) -> int | None:
        """Step back one mutation; returns the affected index (None if nothing to undo)."""
        past, future = self._history.past, self._history.future
        if not past:
            return None
        previous = past[-1]
        redo_entry = HistoryEntry(self._rows, previous.affected_index)
        self._history = History(past=past[:-1], future=(redo_entry,) + future)
        self._rows = previous.rows
        self.last_undo_redo_index = previous.affected_index
        return previous.affected_index

    def redo(self) -> int | None:
        past, future = self._history.past, self._history.future
        if not future:
            return None
        nxt = future[0]
        undo_entry = HistoryEntry(self._rows, nxt.affected_index)
        self._history = History(past=past + (undo_entry,), future=future[1:])
        self._rows = nxt.rows
        self.last_undo_redo_index = nxt.affected_index
        return nxt.affected_index

    def clear_history(self) -> None:
        self._history = History()
        self.last_undo_redo_index = None
