"""Domain models for the combo toolkit.

Rows and dots, undo history, catalog metadata, collaborator results and
configuration.
"""

from .combo_row import DotSku, RawComboItem, RawDot, Row
from .config_models import (
    AiConfig,
    ComboConfig,
    CrossSellConfig,
    GoogleSheetsConfig,
    ProductApiConfig,
    ScrapeConfig,
)
from .history import History, HistoryEntry
from .product import CrossSellItem, ProductLookup, ProductMetadata
from .results import (
    Err,
    Ok,
    ParseError,
    RateLimitHint,
    UpstreamError,
    ValidationError,
)

__all__ = [
    # Row models
    "DotSku",
    "Row",
    "RawDot",
    "RawComboItem",
    # History
    "History",
    "HistoryEntry",
    # Catalog
    "ProductMetadata",
    "ProductLookup",
    "CrossSellItem",
    # Configuration models
    "ComboConfig",
    "ProductApiConfig",
    "GoogleSheetsConfig",
    "ScrapeConfig",
    "AiConfig",
    "CrossSellConfig",
    # Errors / results
    "ParseError",
    "ValidationError",
    "UpstreamError",
    "RateLimitHint",
    "Ok",
    "Err",
]
