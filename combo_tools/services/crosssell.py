from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from urllib.parse import quote

import requests

from combo_tools.logging.error_log import ErrorLogBuffer
from combo_tools.models.config_models import CrossSellConfig
from combo_tools.models.product import CrossSellItem
from combo_tools.models.results import Err, Ok, Result, UpstreamError

from .progress import ProgressTracker

"""Crosssell link viewer.

One GET per SKU against the storefront REST API. A 404 means "no links";
any other failure is isolated to its SKU and reported in ``errors`` while
the remaining SKUs still resolve.
"""

__all__ = [
    "CrossSellClient",
    "CrossSellReport",
    "extract_skus_from_csv",
    "fetch_crosssell",
]

logger = logging.getLogger(__name__)

SERVICE = "crosssell"
MAX_WORKERS = 8


def _position(raw: object) -> int:
    try:
        return int(raw or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def extract_skus_from_csv(content: str) -> list[str]:
    """First column of each line; ``sku`` header and wrapping quotes dropped."""
    skus: dict[str, None] = {}
    for raw_line in content.strip().splitlines():
        line = raw_line.strip()
        if not line:
            continue
        delimiter = "," if "," in line else "\t" if "\t" in line else ";" if ";" in line else ","
        first = line.split(delimiter)[0].strip()
        if first.startswith('"'):
            first = first[1:]
        if first.endswith('"'):
            first = first[:-1]
        if not first or first.lower() == "sku":
            continue
        skus.setdefault(first, None)
    return list(skus)


@dataclass
class CrossSellReport:
    items: list[CrossSellItem] = field(default_factory=list)
    errors: dict[str, UpstreamError] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.errors)


class CrossSellClient:
    def __init__(self, config: CrossSellConfig, session: requests.Session | None = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    def url_for(self, sku: str) -> str:
        return f"{self._config.endpoint.rstrip('/')}/index.php/rest/V1/products/{quote(sku, safe='')}/links/crosssell"

    def fetch_one(self, sku: str, token: str) -> Result[list[CrossSellItem]]:
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {token}"}
        try:
            resp = self._session.get(self.url_for(sku), headers=headers, timeout=self._config.timeout_seconds)
        except requests.RequestException as e:
            return Err(UpstreamError(SERVICE, f"{sku}: request failed: {e}"))
        if resp.status_code == 404:
            return Ok([])
        if resp.status_code != 200:
            return Err(UpstreamError(SERVICE, f"{sku}: upstream status {resp.status_code}", resp.status_code))
        try:
            data = resp.json()
        except ValueError as e:
            return Err(UpstreamError(SERVICE, f"{sku}: invalid JSON: {e}"))
        if not isinstance(data, list):
            return Ok([])
        items = [
            CrossSellItem(
                sku=sku,
                link_type=str(entry.get("link_type", "")),
                linked_product_sku=str(entry.get("linked_product_sku", "")),
                linked_product_type=str(entry.get("linked_product_type", "")),
                position=_position(entry.get("position")),
            )
            for entry in data
            if isinstance(entry, dict)
        ]
        return Ok(items)


def fetch_crosssell(
    client: CrossSellClient,
    skus: list[str],
    token: str,
    error_log: ErrorLogBuffer | None = None,
) -> CrossSellReport:
    """Fetch links for every SKU in parallel; output keeps the input SKU order.

    Raises:
        ValueError: no SKUs or an empty token (nothing is requested)
    """
    wanted = list(dict.fromkeys(s.strip() for s in skus if s and s.strip()))
    token = (token or "").strip()
    if not wanted or not token:
        raise ValueError("crosssell lookup needs at least one SKU and a bearer token")

    by_sku: dict[str, list[CrossSellItem]] = {}
    report = CrossSellReport()
    with ProgressTracker(len(wanted), description="Crosssell", unit="sku") as progress:
        with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(wanted))) as executor:
            futures = {executor.submit(client.fetch_one, sku, token): sku for sku in wanted}
            for future in as_completed(futures):
                sku = futures[future]
                result = future.result()
                if isinstance(result, Err):
                    report.errors[sku] = result.error
                    progress.advance(success=False, label=sku)
                    continue
                by_sku[sku] = result.value
                progress.advance(label=sku)

    for sku in wanted:
        report.items.extend(by_sku.get(sku, []))
    if report.errors:
        logger.warning("crosssell lookup failed for %d/%d skus", len(report.errors), len(wanted))
        if error_log is not None:
            for sku, err in report.errors.items():
                error_log.record_upstream(err, target=sku)
    return report
