from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from combo_tools.models.combo_row import DotSku, Row
from combo_tools.parsing.csv_reader import CONSOLIDATED_HEADER
from combo_tools.parsing.media import store_direct_url
from combo_tools.parsing.script_reader import COMBO_VARIABLE

"""Row export: CSV, <script> block and spreadsheet values.

Only visible dots (non-empty SKU) are written. Positions are emitted as
stored; the CSV form packs them as ``top:left`` with either side allowed
to be empty, which the CSV reader splits back into the same strings.
"""

__all__ = [
    "to_csv",
    "to_script_block",
    "to_sheet_values",
    "serialize_js",
    "format_position",
    "combo_data",
]


def format_position(dot: DotSku) -> str:
    if dot.top and dot.left:
        return f"{dot.top}:{dot.left}"
    if dot.top:
        return f"{dot.top}:"
    if dot.left:
        return f":{dot.left}"
    return ""


def _row_cells(row: Row) -> list[str]:
    dots = row.visible_dots
    return [
        row.product_sku or "",
        row.prod_name or "",
        row.url or "",
        row.image or "",
        ";".join(d.sku.strip() for d in dots),
        ";".join(format_position(d) for d in dots),
    ]


def _quote_cell(cell: str) -> str:
    if "," in cell or '"' in cell or "\n" in cell or "\r" in cell:
        return '"' + cell.replace('"', '""') + '"'
    return cell


def to_csv(rows: Iterable[Row]) -> str:
    lines = [",".join(CONSOLIDATED_HEADER)]
    for row in rows:
        lines.append(",".join(_quote_cell(c) for c in _row_cells(row)))
    return "\n".join(lines)


def to_sheet_values(rows: Iterable[Row]) -> list[list[str]]:
    """Header plus one list of cells per row, in the consolidated column order."""
    return [list(CONSOLIDATED_HEADER)] + [_row_cells(row) for row in rows]


def _js_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def serialize_js(obj: Any, indent: int = 0) -> str:
    """Render ``obj`` as a JS literal with bare keys and two-space indentation."""
    spaces = "  " * indent
    if obj is None:
        return "null"
    if isinstance(obj, str):
        return _js_string(obj)
    if isinstance(obj, bool):
        return "true" if obj else "false"
    if isinstance(obj, (int, float)):
        return repr(obj)
    if isinstance(obj, (list, tuple)):
        if not obj:
            return "[]"
        items = [serialize_js(item, indent + 1) for item in obj]
        joiner = f",\n{spaces}  "
        return f"[\n{spaces}  {joiner.join(items)}\n{spaces}]"
    if isinstance(obj, Mapping):
        if not obj:
            return "{}"
        items = [f"{key}: {serialize_js(value, indent + 1)}" for key, value in obj.items()]
        joiner = f",\n{spaces}  "
        return f"{{\n{spaces}  {joiner.join(items)}\n{spaces}}}"
    raise TypeError(f"cannot serialize {type(obj).__name__} to a JS literal")


def combo_data(rows: Iterable[Row], dot_url_lookup: Mapping[str, str]) -> list[dict[str, Any]]:
    """Build the item dicts written to the script block.

    ``dot_url_lookup`` maps dot SKU to its resolved storefront URL; a dot
    without a usable URL is written without a ``url`` key.
    """
    items: list[dict[str, Any]] = []
    for row in rows:
        dots = []
        for dot in row.visible_dots:
            entry: dict[str, Any] = {"sku": dot.sku, "top": dot.top or "", "left": dot.left or ""}
            link = store_direct_url(dot_url_lookup.get(dot.sku, ""))
            if link:
                entry["url"] = link
            dots.append(entry)
        items.append(
            {
                "name": row.prod_name or "",
                "sku": row.product_sku or "",
                "img": row.image or "",
                "dots": dots,
            }
        )
    return items


def to_script_block(rows: Iterable[Row], dot_url_lookup: Mapping[str, str] | None = None) -> str:
    data = combo_data(rows, dot_url_lookup or {})
    return f"<script>\nconst {COMBO_VARIABLE} = {serialize_js(data)};\n</script>"
