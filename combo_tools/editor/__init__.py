from .position import (
    BoundingBox,
    PositionEditor,
    format_percent,
    pointer_to_percent,
    position_from_pointer,
)

__all__ = [
    "BoundingBox",
    "PositionEditor",
    "format_percent",
    "pointer_to_percent",
    "position_from_pointer",
]
