from __future__ import annotations

import logging
import re
from typing import Any

from combo_tools.models.combo_row import RawComboItem, RawDot
from combo_tools.models.results import ParseError

from .literal import LiteralSyntaxError, find_declaration, parse_literal
from .media import extract_string

"""Embedded script / raw array literal reader.

Input is either HTML with one or more ``<script>`` blocks or a bare JS
snippet. Three strategies are tried in order, the first that yields a list
wins:

1. the initialiser of the ``allRecomComboData`` declaration
2. the text between the first ``[`` and the last ``]``
3. the whole content as a single array expression
"""

logger = logging.getLogger(__name__)

COMBO_VARIABLE = "allRecomComboData"

_SCRIPT_RE = re.compile(r"<script[^>]*>([\s\S]*?)</script>", re.IGNORECASE)


def has_script_blocks(text: str) -> bool:
    return _SCRIPT_RE.search(text) is not None


def extract_script_content(text: str) -> str:
    """Concatenate all <script> bodies; the text itself when there are none."""
    bodies = [m.group(1).strip() for m in _SCRIPT_RE.finditer(text)]
    return "\n".join(bodies) if bodies else text


def _from_declaration(content: str) -> Any:
    return find_declaration(content, COMBO_VARIABLE)


def _from_bracket_span(content: str) -> Any:
    start = content.find("[")
    end = content.rfind("]")
    if start < 0 or end <= start:
        raise LookupError("no bracketed span")
    return parse_literal(content[start : end + 1])


def _from_whole(content: str) -> Any:
    return parse_literal(content)


_STRATEGIES = (
    ("declaration", _from_declaration),
    ("bracket_span", _from_bracket_span),
    ("whole", _from_whole),
)


def parse_combo_array(text: str) -> list[Any]:
    """Return the combo array literal found in ``text``.

    Raises:
        ParseError: when no strategy yields a list
    """
    content = extract_script_content(text)
    for name, strategy in _STRATEGIES:
        try:
            value = strategy(content)
        except (LookupError, LiteralSyntaxError) as e:
            logger.debug("combo array strategy=%s failed: %s", name, e)
            continue
        if isinstance(value, list):
            logger.debug("combo array strategy=%s items=%d", name, len(value))
            return value
        logger.debug("combo array strategy=%s produced %s, not a list", name, type(value).__name__)
    raise ParseError("Input did not evaluate to an array")


def _validate_dots(raw: Any, index: int) -> tuple[RawDot, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ParseError(f"expected a list, got {type(raw).__name__}", field=f"[{index}].dots")
    dots: list[RawDot] = []
    for j, dot in enumerate(raw):
        if not isinstance(dot, dict):
            continue
        sku = extract_string(dot.get("sku"))
        if not sku:
            continue
        for key in ("top", "left"):
            if isinstance(dot.get(key), (dict, list)):
                raise ParseError("expected a string", field=f"[{index}].dots[{j}].{key}")
        dots.append(
            RawDot(
                sku=sku,
                top=extract_string(dot.get("top")),
                left=extract_string(dot.get("left")),
            )
        )
    return tuple(dots)


def items_from_array(arr: list[Any]) -> list[RawComboItem]:
    """Validate parsed array entries into RawComboItem.

    Entries that are not objects or lack a SKU are dropped; wrongly typed
    fields raise ParseError naming the field.
    """
    items: list[RawComboItem] = []
    dropped = 0
    for i, entry in enumerate(arr):
        if not isinstance(entry, dict):
            dropped += 1
            continue
        sku = extract_string(entry.get("sku"))
        if not sku:
            dropped += 1
            continue
        img = entry.get("img")
        if isinstance(img, (dict, list)):
            raise ParseError("expected a string", field=f"[{i}].img")
        name = entry.get("name")
        items.append(
            RawComboItem(
                sku=sku,
                img=extract_string(img) if img is not None else None,
                dots=_validate_dots(entry.get("dots"), i),
                name=extract_string(name) if name is not None else None,
            )
        )
    if dropped:
        logger.debug("dropped %d combo entries without sku", dropped)
    return items


def read_script_items(text: str) -> list[RawComboItem]:
    return items_from_array(parse_combo_array(text))
