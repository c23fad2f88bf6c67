from __future__ import annotations

from dataclasses import dataclass, field, replace

"""Combo row domain models.

A combo row is one main product plus the overlay markers ("dots") that link
secondary products onto its image. Positions are kept as the strings the
user or upstream data supplied: "" means unset, and is never collapsed into
"0%".
"""

__all__ = [
    "DotSku",
    "Row",
    "RawDot",
    "RawComboItem",
]


@dataclass(frozen=True)
class DotSku:
    """One overlay marker linked to a main product row.

    Attributes:
        sku: Dot product SKU (empty while being authored)
        top: "" (unset) or numeric string with optional "%" suffix
        left: "" (unset) or numeric string with optional "%" suffix
    """
    sku: str
    top: str = ""
    left: str = ""

    @property
    def visible(self) -> bool:
        return bool(self.sku.strip())

    @property
    def placed(self) -> bool:
        return bool(self.top) and bool(self.left)

    @property
    def unplaced(self) -> bool:
        return not self.top and not self.left

    @property
    def partial(self) -> bool:
        # only one of top/left set
        return not self.placed and not self.unplaced

    def with_position(self, top: str, left: str) -> DotSku:
        return replace(self, top=top, left=left)


@dataclass(frozen=True)
class Row:
    """One main product combo entry.

    image semantics:
        None -> intentionally absent
        ""   -> not yet resolved
    """
    product_sku: str
    prod_name: str = ""
    url: str = ""
    image: str | None = ""
    dot_skus: tuple[DotSku, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # callers may hand in lists; snapshots must stay immutable
        if not isinstance(self.dot_skus, tuple):
            object.__setattr__(self, "dot_skus", tuple(self.dot_skus))

    def find_dot(self, sku: str) -> int:
        """Return the index of the first dot with ``sku`` or -1."""
        for i, dot in enumerate(self.dot_skus):
            if dot.sku == sku:
                return i
        return -1

    def with_dot_position(self, sku: str, top: str, left: str) -> Row:
        idx = self.find_dot(sku)
        if idx < 0:
            raise KeyError(f"dot sku not found on row {self.product_sku!r}: {sku!r}")
        dots = list(self.dot_skus)
        dots[idx] = dots[idx].with_position(top, left)
        return replace(self, dot_skus=tuple(dots))

    def with_dots(self, dots: list[DotSku] | tuple[DotSku, ...]) -> Row:
        return replace(self, dot_skus=tuple(dots))

    @property
    def visible_dots(self) -> tuple[DotSku, ...]:
        return tuple(d for d in self.dot_skus if d.visible)


@dataclass(frozen=True)
class RawDot:
    sku: str
    top: str = ""
    left: str = ""


@dataclass(frozen=True)
class RawComboItem:
    """Parser output before metadata resolution.

    ``name`` and ``url`` are only present when the source format carries them
    (CSV); script literals supply ``sku``, ``img`` and ``dots`` only.
    """
    sku: str
    img: str | None
    dots: tuple[RawDot, ...] = ()
    name: str | None = None
    url: str | None = None
