from __future__ import annotations

import logging
from enum import Enum

from combo_tools.models.combo_row import RawComboItem
from combo_tools.models.results import ParseError

from .csv_reader import looks_like_combo_csv, read_csv_items
from .script_reader import has_script_blocks, read_script_items

"""Combo data format detection and dispatch.

Probe order for FormatHint.AUTO: CSV header, <script> blocks, raw array
literal.
"""

logger = logging.getLogger(__name__)


class FormatHint(Enum):
    AUTO = "auto"
    CSV = "csv"
    SCRIPT = "script"  # HTML with <script> blocks or a raw JS array literal


def detect_format(text: str) -> FormatHint:
    if looks_like_combo_csv(text):
        return FormatHint.CSV
    return FormatHint.SCRIPT


def parse(text: str, hint: FormatHint = FormatHint.AUTO) -> list[RawComboItem]:
    """Parse combo input into raw items.

    Raises:
        ParseError: when no recognised structure is found, or the CSV is
            structurally malformed
    """
    if not text.strip():
        raise ParseError("input is empty")
    fmt = detect_format(text) if hint is FormatHint.AUTO else hint
    if fmt is FormatHint.CSV:
        items = read_csv_items(text)
        source = "csv"
    else:
        items = read_script_items(text)
        source = "script" if has_script_blocks(text) else "array"
    logger.info("parsed %d combo items from %s input", len(items), source)
    return items
