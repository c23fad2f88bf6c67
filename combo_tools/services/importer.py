from __future__ import annotations

import logging
from collections.abc import Iterable

from combo_tools.logging.error_log import ErrorLogBuffer
from combo_tools.models.combo_row import DotSku, RawComboItem, Row
from combo_tools.models.config_models import ComboConfig
from combo_tools.models.product import ProductLookup
from combo_tools.parsing import FormatHint, parse
from combo_tools.parsing.media import parse_media_url

from .catalog import CatalogClient, resolve_metadata

"""Import pipeline: parse -> resolve -> rows.

Name and URL prefer catalog values and fall back to what the source
carried. The image comes from the source when it has one, otherwise from
the catalog.
"""

__all__ = [
    "build_rows",
    "import_text",
]

logger = logging.getLogger(__name__)


def _row_from_item(item: RawComboItem, lookup: ProductLookup, media_base_url: str) -> Row:
    sku = item.sku.strip()
    image = parse_media_url(item.img, media_base_url) if item.img is not None else None
    if not image:
        image = lookup.sku_to_image.get(sku) or None
    dots = tuple(DotSku(d.sku.strip(), d.top, d.left) for d in item.dots if d.sku.strip())
    return Row(
        product_sku=sku,
        prod_name=lookup.sku_to_name.get(sku) or (item.name or "").strip(),
        url=lookup.sku_to_url.get(sku) or (item.url or "").strip(),
        image=image,
        dot_skus=dots,
    )


def build_rows(items: Iterable[RawComboItem], lookup: ProductLookup, media_base_url: str) -> list[Row]:
    return [_row_from_item(item, lookup, media_base_url) for item in items]


def import_text(
    text: str,
    config: ComboConfig,
    *,
    client: CatalogClient | None = None,
    hint: FormatHint = FormatHint.AUTO,
    resolve: bool = True,
    error_log: ErrorLogBuffer | None = None,
) -> list[Row]:
    """Parse ``text`` and backfill metadata for the main product SKUs.

    Raises:
        ParseError: from the parser; catalog failures only degrade the result
    """
    items = parse(text, hint)
    lookup = ProductLookup()
    if resolve and items:
        client = client or CatalogClient(config)
        lookup = resolve_metadata(client, (i.sku for i in items), error_log)
    rows = build_rows(items, lookup, config.media_base_url)
    logger.info("imported %d rows (%d resolved)", len(rows), len(lookup.sku_to_name))
    return rows
