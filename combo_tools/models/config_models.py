from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the combo toolkit.

Built by ``combo_tools.config.loader.load_config`` after YAML loading,
schema validation and environment overrides. Values here are final: callers
never read os.environ themselves.
"""


@dataclass(frozen=True)
class ProductApiConfig:
    """Product catalog list endpoint (relative to store_base_url)."""
    path: str = "/index.php/rest/V1/api/mrl/products/list"
    page_size: int = 100
    timeout_seconds: float = 15.0
    image_cache_hash: str = "912f4218b83600a6f47af6c76f1f9667"


@dataclass(frozen=True)
class GoogleSheetsConfig:
    spreadsheet_id: str | None = None
    sheet_name: str | None = None
    read_range_rows: int = 10000
    service_account_email: str | None = None  # env only
    private_key: str | None = None  # env only


@dataclass(frozen=True)
class ScrapeConfig:
    concurrency: int = 6
    max_urls: int = 60
    user_agent: str = "Mozilla/5.0 (compatible; combo-guide-scraper)"
    navigation_timeout_ms: int = 15000
    selector_timeout_ms: int = 8000


@dataclass(frozen=True)
class AiConfig:
    model: str = "gemini-2.5-flash-lite"
    concurrency: int = 5
    max_image_dimension: int = 1024
    api_key: str | None = None  # env only


@dataclass(frozen=True)
class CrossSellConfig:
    endpoint: str | None = None
    token: str | None = None  # env only
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class ComboConfig:
    """Root configuration object."""
    media_base_url: str
    store_base_url: str
    product_api: ProductApiConfig = field(default_factory=ProductApiConfig)
    google_sheets: GoogleSheetsConfig = field(default_factory=GoogleSheetsConfig)
    scrape: ScrapeConfig = field(default_factory=ScrapeConfig)
    ai: AiConfig = field(default_factory=AiConfig)
    crosssell: CrossSellConfig = field(default_factory=CrossSellConfig)
    max_history: int | None = None  # None -> unbounded undo history
