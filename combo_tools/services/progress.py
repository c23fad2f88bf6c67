from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

Batch collaborators (crosssell lookups, page scraping, AI suggestions)
report one step per finished unit. In non-TTY environments the bar is
disabled so CI logs stay free of control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Single tqdm bar over a known number of units."""

    def __init__(self, total: int, *, description: str = "Processing", unit: str = "item") -> None:
        self.total = total
        self.description = description
        self.completed = 0
        self.failed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, success: bool = True, label: str | None = None) -> None:
        self.completed += 1
        if not success:
            self.failed += 1
        if self.pbar is not None:
            if label:
                self.pbar.set_description(f"{self.description} ({label})")
            self.pbar.update(1)
            if self.failed:
                self.pbar.set_postfix(failed=self.failed)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
