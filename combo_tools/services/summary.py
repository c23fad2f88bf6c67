from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from combo_tools.models.combo_row import Row

"""Summary line rendering for CLI runs.

Format:
SUMMARY rows={rows} dots={dots} placed={placed} partial={partial}
unplaced={unplaced} unresolved={unresolved}

``unresolved`` counts rows with a product SKU but no resolved name.
"""

__all__ = [
    "RowStats",
    "collect_stats",
    "render_summary_line",
]


@dataclass(frozen=True)
class RowStats:
    rows: int = 0
    dots: int = 0
    placed: int = 0
    partial: int = 0
    unplaced: int = 0
    unresolved: int = 0


def collect_stats(rows: Iterable[Row]) -> RowStats:
    n_rows = dots = placed = partial = unplaced = unresolved = 0
    for row in rows:
        n_rows += 1
        if row.product_sku and not row.prod_name:
            unresolved += 1
        for dot in row.visible_dots:
            dots += 1
            if dot.placed:
                placed += 1
            elif dot.partial:
                partial += 1
            else:
                unplaced += 1
    return RowStats(n_rows, dots, placed, partial, unplaced, unresolved)


def render_summary_line(stats: RowStats) -> str:
    """Render the SUMMARY line.

    Examples:
        >>> render_summary_line(RowStats(rows=2, dots=3, placed=1, partial=1, unplaced=1))
        'SUMMARY rows=2 dots=3 placed=1 partial=1 unplaced=1 unresolved=0'
    """
    return (
        f"SUMMARY rows={stats.rows} "
        f"dots={stats.dots} "
        f"placed={stats.placed} "
        f"partial={stats.partial} "
        f"unplaced={stats.unplaced} "
        f"unresolved={stats.unresolved}"
    )
