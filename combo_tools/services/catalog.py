from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import requests

from combo_tools.logging.error_log import ErrorLogBuffer
from combo_tools.models.config_models import ComboConfig
from combo_tools.models.product import ProductLookup, ProductMetadata
from combo_tools.models.results import Err, Ok, Result, UpstreamError
from combo_tools.parsing.media import catalog_image_template, parse_media_url, product_url

"""Product catalog client and metadata resolver.

``CatalogClient.fetch_products`` performs one POST per call (page 1 only)
and returns ``Ok(list[ProductMetadata])`` or ``Err(UpstreamError)``.
``resolve_metadata`` is the boundary: it never raises, logs a single
warning on failure and falls back to an empty lookup.
"""

__all__ = [
    "CatalogClient",
    "resolve_metadata",
    "unique_skus",
    "PRODUCT_FIELDS",
]

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = "sku,name,url_key,image"
SERVICE = "catalog"


def unique_skus(skus: Iterable[str]) -> list[str]:
    """Trim, drop blanks and de-duplicate preserving first-seen order."""
    seen: dict[str, None] = {}
    for sku in skus:
        value = (sku or "").strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


class CatalogClient:
    def __init__(self, config: ComboConfig, session: requests.Session | None = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self._config.store_base_url}{self._config.product_api.path}"

    def _to_metadata(self, item: dict[str, Any]) -> ProductMetadata:
        api = self._config.product_api
        image_path = str(item.get("image") or "")
        image = None
        if image_path:
            image = parse_media_url(
                catalog_image_template(image_path, api.image_cache_hash),
                self._config.media_base_url,
            )
        url_key = str(item.get("url_key") or "")
        return ProductMetadata(
            sku=str(item.get("sku") or ""),
            name=str(item.get("name") or ""),
            url=product_url(self._config.store_base_url, url_key) if url_key else "",
            image=image,
        )

    def fetch_products(self, skus: list[str]) -> Result[list[ProductMetadata]]:
        if not skus:
            return Ok([])
        api = self._config.product_api
        body = {"pids": skus, "fields": PRODUCT_FIELDS, "page": 1, "page_size": api.page_size}
        try:
            resp = self._session.post(self.endpoint, json=body, timeout=api.timeout_seconds)
        except requests.RequestException as e:
            return Err(UpstreamError(SERVICE, f"request failed: {e}"))
        if resp.status_code != 200:
            snippet = resp.text[:200] if resp.text else ""
            return Err(UpstreamError(SERVICE, f"upstream status {resp.status_code}: {snippet}", resp.status_code))
        try:
            payload = resp.json()
        except ValueError as e:
            return Err(UpstreamError(SERVICE, f"invalid JSON: {e}"))
        if not isinstance(payload, list) or not payload:
            return Err(UpstreamError(SERVICE, "invalid response format from upstream"))
        first = payload[0] if isinstance(payload[0], dict) else {}
        data = first.get("data")
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return Err(UpstreamError(SERVICE, "response is missing data.items"))
        return Ok([self._to_metadata(item) for item in items if isinstance(item, dict)])


def resolve_metadata(
    client: CatalogClient,
    skus: Iterable[str],
    error_log: ErrorLogBuffer | None = None,
) -> ProductLookup:
    """Look up name / url / image for ``skus``; empty lookup on any failure."""
    wanted = unique_skus(skus)
    if not wanted:
        return ProductLookup()
    result = client.fetch_products(wanted)
    if isinstance(result, Err):
        logger.warning("product lookup failed (%d skus): %s", len(wanted), result.error.message)
        if error_log is not None:
            error_log.record_upstream(result.error, target=",".join(wanted[:10]))
        return ProductLookup()
    lookup = ProductLookup.from_products(result.value)
    logger.debug("resolved %d/%d skus", len(lookup.sku_to_name), len(wanted))
    return lookup
