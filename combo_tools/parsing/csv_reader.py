from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum

import pandas as pd

from combo_tools.models.combo_row import RawComboItem, RawDot
from combo_tools.models.results import ParseError

"""Combo CSV reader.

Three header variants are recognised:

- consolidated: product_sku, prod_name, url, img, dot_skus, dot_pos
  (``;`` joined lists, positions ``top:left``)
- separated:    dot1_sku..dot4_sku, dot1_pos..dot4_pos
- legacy:       Chinese headers matched by substring, no positions

Cells are read as strings (no NA conversion) and trimmed. Structural errors
(unbalanced quotes, ragged rows pandas cannot align) abort the whole read.
"""

logger = logging.getLogger(__name__)

CONSOLIDATED_HEADER = ["product_sku", "prod_name", "url", "img", "dot_skus", "dot_pos"]
SEPARATED_SLOTS = 4

LEGACY_DOT_MARKER = "白點商品"
LEGACY_NAME_MARKER = "需修改品項"
LEGACY_URL_MARKER = "前台連結"
LEGACY_URL_EXCLUDE = "release"

KNOWN_COLUMNS = frozenset(
    CONSOLIDATED_HEADER
    + [f"dot{i}_sku" for i in range(1, SEPARATED_SLOTS + 1)]
    + [f"dot{i}_pos" for i in range(1, SEPARATED_SLOTS + 1)]
)
LEGACY_MARKERS = (LEGACY_DOT_MARKER, LEGACY_NAME_MARKER, LEGACY_URL_MARKER)


class CsvLayout(Enum):
    CONSOLIDATED = "consolidated"
    SEPARATED = "separated"
    PRODUCT_ONLY = "product_only"  # product_sku column without dot columns
    LEGACY = "legacy"


@dataclass
class CsvTable:
    columns: list[str]
    records: list[dict[str, str]]


def _strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text


def _header_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line
    return ""


def detect_delimiter(header_line: str) -> str:
    for delim in (",", "\t", ";"):
        if delim in header_line:
            return delim
    return ","


def header_columns(text: str) -> list[str]:
    line = _header_line(_strip_bom(text))
    delim = detect_delimiter(line)
    return [c.strip().strip('"').strip() for c in line.split(delim)]


def looks_like_combo_csv(text: str) -> bool:
    """True when the first non-empty line is a header with known columns."""
    line = _header_line(_strip_bom(text)).strip()
    if not line or line[0] in "<[{" or "allRecomComboData" in line:
        return False
    cols = header_columns(text)
    if any(c in KNOWN_COLUMNS for c in cols):
        return True
    return any(marker in c for c in cols for marker in LEGACY_MARKERS)


def read_csv_table(text: str) -> CsvTable:
    """Read CSV text into trimmed string records.

    Raises:
        ParseError: on structural malformation
    """
    text = _strip_bom(text)
    if not text.strip():
        return CsvTable(columns=[], records=[])
    delim = detect_delimiter(_header_line(text))
    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=delim,
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=True,
            index_col=False,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ParseError(f"Failed to parse CSV: {e}") from e

    df = df.fillna("")
    columns = [str(c).strip() for c in df.columns]
    records: list[dict[str, str]] = []
    for raw in df.itertuples(index=False, name=None):
        record = {col: str(val).strip() for col, val in zip(columns, raw, strict=False)}
        if not any(record.values()):
            continue
        records.append(record)
    return CsvTable(columns=columns, records=records)


def parse_position(pos: str) -> tuple[str, str]:
    """Split ``top:left``; either side may be empty ("50%:", ":30%", ":")."""
    if not pos or not pos.strip():
        return ("", "")
    parts = pos.split(":")
    if len(parts) == 2:
        return (parts[0].strip(), parts[1].strip())
    if len(parts) == 1:
        return (parts[0].strip(), "")
    return ("", "")


def detect_layout(columns: list[str]) -> CsvLayout:
    cols = set(columns)
    if "dot_skus" in cols and "dot_pos" in cols:
        return CsvLayout.CONSOLIDATED
    if any(f"dot{i}_sku" in cols for i in range(1, SEPARATED_SLOTS + 1)):
        return CsvLayout.SEPARATED
    if "product_sku" in cols:
        return CsvLayout.PRODUCT_ONLY
    if any(marker in c for c in columns for marker in LEGACY_MARKERS):
        return CsvLayout.LEGACY
    raise ParseError(f"unrecognised CSV header: {columns}")


def _consolidated_dots(record: dict[str, str]) -> tuple[RawDot, ...]:
    skus = [s.strip() for s in record.get("dot_skus", "").split(";") if s.strip()]
    pos_field = record.get("dot_pos", "")
    positions = [p.strip() for p in pos_field.split(";")] if pos_field else []
    dots = []
    for i, sku in enumerate(skus):
        top, left = parse_position(positions[i] if i < len(positions) else "")
        dots.append(RawDot(sku=sku, top=top, left=left))
    return tuple(dots)


def _separated_dots(record: dict[str, str]) -> tuple[RawDot, ...]:
    dots = []
    for i in range(1, SEPARATED_SLOTS + 1):
        sku = record.get(f"dot{i}_sku", "").strip()
        if not sku:
            continue
        top, left = parse_position(record.get(f"dot{i}_pos", ""))
        dots.append(RawDot(sku=sku, top=top, left=left))
    return tuple(dots)


def _legacy_item(record: dict[str, str], columns: list[str]) -> RawComboItem:
    dot_cols = [c for c in columns if LEGACY_DOT_MARKER in c]
    name_col = next((c for c in columns if LEGACY_NAME_MARKER in c), None)
    url_col = next(
        (c for c in columns if LEGACY_URL_MARKER in c and LEGACY_URL_EXCLUDE not in c),
        None,
    )
    dots = tuple(RawDot(sku=record[c]) for c in dot_cols if record.get(c, "").strip())
    return RawComboItem(
        sku="",
        img=None,
        dots=dots,
        name=record.get(name_col, "") if name_col else "",
        url=record.get(url_col, "") if url_col else "",
    )


def items_from_table(table: CsvTable) -> list[RawComboItem]:
    if not table.columns:
        return []
    layout = detect_layout(table.columns)
    has_img = "img" in table.columns
    items: list[RawComboItem] = []
    for record in table.records:
        if layout is CsvLayout.LEGACY:
            items.append(_legacy_item(record, table.columns))
            continue
        if layout is CsvLayout.CONSOLIDATED:
            dots = _consolidated_dots(record)
        elif layout is CsvLayout.SEPARATED:
            dots = _separated_dots(record)
        else:
            dots = ()
        img = record.get("img", "") if has_img else ""
        items.append(
            RawComboItem(
                sku=record.get("product_sku", ""),
                img=img or None,
                dots=dots,
                name=record.get("prod_name", ""),
                url=record.get("url", ""),
            )
        )
    logger.debug("csv layout=%s items=%d", layout.value, len(items))
    return items


def read_csv_items(text: str) -> list[RawComboItem]:
    return items_from_table(read_csv_table(text))


def items_from_sheet_values(values: list[list[str]]) -> list[RawComboItem]:
    """Rows pulled from a spreadsheet in the consolidated shape (header removed)."""
    items = []
    for row in values:
        cells = [str(c).strip() for c in row] + [""] * len(CONSOLIDATED_HEADER)
        record = dict(zip(CONSOLIDATED_HEADER, cells, strict=False))
        items.append(
            RawComboItem(
                sku=record["product_sku"],
                img=record["img"] or None,
                dots=_consolidated_dots(record),
                name=record["prod_name"],
                url=record["url"],
            )
        )
    return items
