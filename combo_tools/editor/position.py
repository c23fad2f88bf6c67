from __future__ import annotations

import math
import re
from dataclasses import dataclass

from combo_tools.models.combo_row import DotSku
from combo_tools.models.results import ValidationError
from combo_tools.store.row_store import RowStore

"""Dot position editor.

Maps pointer coordinates on the displayed main image to (top%, left%) and
commits them to the row store. Two interaction modes:

- placement: for an unplaced dot, the next click commits a position
- drag: for a placed dot, moves update a local preview; release commits
  only when the pointer travelled more than the drag threshold

Each commit is exactly one ``RowStore.update_row`` call.
"""

__all__ = [
    "BoundingBox",
    "PositionEditor",
    "pointer_to_percent",
    "format_percent",
    "position_from_pointer",
    "normalize_position_text",
    "DRAG_THRESHOLD_PX",
]

DRAG_THRESHOLD_PX = 3.0

_POSITION_TEXT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)%?$")


@dataclass(frozen=True)
class BoundingBox:
    """Displayed image rectangle in pointer coordinates."""
    left: float
    top: float
    width: float
    height: float


def pointer_to_percent(coord: float, origin: float, size: float) -> float:
    """``100 * (coord - origin) / size`` clamped to [0, 100]."""
    if size <= 0:
        raise ValueError(f"bounding box size must be positive, got {size}")
    pct = 100.0 * (coord - origin) / size
    return max(0.0, min(100.0, pct))


def format_percent(value: float) -> str:
    return f"{value:.2f}%"


def position_from_pointer(x: float, y: float, box: BoundingBox) -> tuple[str, str]:
    """Return (top, left) strings for a pointer position."""
    top = pointer_to_percent(y, box.top, box.height)
    left = pointer_to_percent(x, box.left, box.width)
    return format_percent(top), format_percent(left)


def normalize_position_text(text: str) -> str:
    """Validate typed input: "" (unset) or a number with optional "%"."""
    value = (text or "").strip()
    if value and not _POSITION_TEXT_RE.match(value):
        raise ValidationError(f"position must be a number with optional '%': {text!r}")
    return value


@dataclass
class _DragState:
    sku: str
    start_x: float
    start_y: float
    preview: tuple[str, str] | None = None


class PositionEditor:
    """Interactive position editing for the dots of one store row."""

    def __init__(self, store: RowStore, row_index: int, drag_threshold: float = DRAG_THRESHOLD_PX) -> None:
        self._store = store
        self._row_index = row_index
        self._threshold = drag_threshold
        self.placement_sku: str | None = None
        self._drag: _DragState | None = None

    # -- helpers -----------------------------------------------------------------
    def _dot(self, sku: str) -> DotSku:
        row = self._store[self._row_index]
        idx = row.find_dot(sku)
        if idx < 0:
            raise ValidationError(f"dot sku not found: {sku}")
        return row.dot_skus[idx]

    def _commit(self, sku: str, top: str, left: str) -> None:
        row = self._store[self._row_index]
        self._store.update_row(self._row_index, row.with_dot_position(sku, top, left))

    @property
    def in_placement_mode(self) -> bool:
        return self.placement_sku is not None

    @property
    def dragging_sku(self) -> str | None:
        return self._drag.sku if self._drag else None

    def display_position(self, sku: str) -> tuple[str, str]:
        """Position to render: the drag preview when dragging ``sku``, else stored."""
        if self._drag and self._drag.sku == sku and self._drag.preview:
            return self._drag.preview
        dot = self._dot(sku)
        return dot.top, dot.left

    # -- placement mode ----------------------------------------------------------
    def begin_placement(self, sku: str) -> None:
        if self._drag is not None:
            raise ValidationError("cannot enter placement mode while dragging")
        dot = self._dot(sku)
        if dot.placed:
            raise ValidationError(f"dot already placed: {sku}")
        self.placement_sku = sku

    def cancel_placement(self) -> None:
        self.placement_sku = None

    def click(self, x: float, y: float, box: BoundingBox) -> bool:
        """Commit a position for the dot in placement mode; False if not placing."""
        if self.placement_sku is None:
            return False
        top, left = position_from_pointer(x, y, box)
        sku = self.placement_sku
        self.placement_sku = None
        self._commit(sku, top, left)
        return True

    # -- drag mode ---------------------------------------------------------------
    def begin_drag(self, sku: str, x: float, y: float) -> bool:
        """Start dragging a placed dot; False when dragging is not allowed."""
        if self.placement_sku is not None:
            return False
        if not self._dot(sku).placed:
            return False
        self._drag = _DragState(sku=sku, start_x=x, start_y=y)
        return True

    def move(self, x: float, y: float, box: BoundingBox) -> tuple[str, str] | None:
        if self._drag is None:
            return None
        self._drag.preview = position_from_pointer(x, y, box)
        return self._drag.preview

    def release(self, x: float, y: float, box: BoundingBox) -> bool:
        """End the drag; commits only if the pointer moved past the threshold."""
        drag = self._drag
        if drag is None:
            return False
        self._drag = None
        distance = math.hypot(x - drag.start_x, y - drag.start_y)
        if distance <= self._threshold:
            return False
        top, left = drag.preview or position_from_pointer(x, y, box)
        self._commit(drag.sku, top, left)
        return True

    # -- direct entry ------------------------------------------------------------
    def set_position_text(self, sku: str, top: str, left: str) -> None:
        top_v = normalize_position_text(top)
        left_v = normalize_position_text(left)
        self._dot(sku)
        self._commit(sku, top_v, left_v)
