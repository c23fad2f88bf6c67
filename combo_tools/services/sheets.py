from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from combo_tools.export.serializer import to_sheet_values
from combo_tools.logging.error_log import ErrorLogBuffer
from combo_tools.models.combo_row import Row
from combo_tools.models.config_models import ComboConfig, GoogleSheetsConfig
from combo_tools.models.results import Err, Ok, Result, UpstreamError
from combo_tools.parsing.csv_reader import items_from_sheet_values

from .catalog import CatalogClient, resolve_metadata
from .importer import build_rows

"""Google Sheets pull / push for combo rows.

The sheet holds the consolidated layout: a header row followed by
``product_sku, prod_name, url, img, dot_skus, dot_pos``. Push clears a
generous range first so shrinking the table leaves no stale rows behind.
"""

__all__ = [
    "SheetsGateway",
    "pull_rows",
    "push_rows",
    "clear_range",
    "SCOPES",
]

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
SERVICE = "sheets"
MIN_CLEAR_ROWS = 1000
CLEAR_PADDING_ROWS = 100


def clear_range(row_count: int) -> str:
    return f"A1:Z{max(MIN_CLEAR_ROWS, row_count + CLEAR_PADDING_ROWS)}"


def _authorize(config: GoogleSheetsConfig) -> gspread.Client:
    info = {
        "type": "service_account",
        "client_email": config.service_account_email,
        "private_key": config.private_key,
        "token_uri": TOKEN_URI,
    }
    credentials = Credentials.from_service_account_info(info, scopes=SCOPES)
    return gspread.authorize(credentials)


def _upstream(e: Exception) -> UpstreamError:
    status = getattr(e, "code", None)
    return UpstreamError(SERVICE, f"{type(e).__name__}: {e}", status if isinstance(status, int) else None)


class SheetsGateway:
    """Thin worksheet access returning Ok/Err results."""

    def __init__(
        self,
        config: GoogleSheetsConfig,
        client_factory: Callable[[GoogleSheetsConfig], Any] = _authorize,
    ) -> None:
        self._config = config
        self._client_factory = client_factory

    def _worksheet(self, spreadsheet_id: str | None, sheet_name: str | None) -> Any:
        sid = spreadsheet_id or self._config.spreadsheet_id
        name = sheet_name or self._config.sheet_name
        if not sid or not name:
            raise ValueError("spreadsheet id and sheet name are required")
        gc = self._client_factory(self._config)
        return gc.open_by_key(sid).worksheet(name)

    def _check_credentials(self) -> Err | None:
        if not self._config.service_account_email or not self._config.private_key:
            return Err(
                UpstreamError(
                    SERVICE,
                    "missing Google Sheets credentials "
                    "(GOOGLE_SHEETS_SERVICE_ACCOUNT_EMAIL / GOOGLE_SHEETS_PRIVATE_KEY)",
                )
            )
        return None

    def pull_values(self, spreadsheet_id: str | None = None, sheet_name: str | None = None) -> Result[list[list[str]]]:
        missing = self._check_credentials()
        if missing is not None:
            return missing
        try:
            ws = self._worksheet(spreadsheet_id, sheet_name)
            values = ws.get(f"A1:Z{self._config.read_range_rows}")
        except (gspread.exceptions.GSpreadException, GoogleAuthError, ValueError) as e:
            return Err(_upstream(e))
        return Ok([[str(c) for c in row] for row in (values or [])])

    def push_values(
        self,
        values: Sequence[Sequence[str]],
        spreadsheet_id: str | None = None,
        sheet_name: str | None = None,
    ) -> Result[int]:
        """Replace the sheet contents with ``values``; Ok carries the data row count."""
        missing = self._check_credentials()
        if missing is not None:
            return missing
        data_rows = max(len(values) - 1, 0)
        try:
            ws = self._worksheet(spreadsheet_id, sheet_name)
            ws.batch_clear([clear_range(data_rows)])
            ws.update(values=[list(v) for v in values], range_name="A1", value_input_option="RAW")
        except (gspread.exceptions.GSpreadException, GoogleAuthError, ValueError) as e:
            return Err(_upstream(e))
        return Ok(data_rows)


def pull_rows(
    gateway: SheetsGateway,
    config: ComboConfig,
    *,
    client: CatalogClient | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> Result[list[Row]]:
    """Read the sheet into rows, enriching name/url from the catalog."""
    result = gateway.pull_values()
    if isinstance(result, Err):
        return result
    items = items_from_sheet_values(result.value[1:])
    client = client or CatalogClient(config)
    lookup = resolve_metadata(client, (i.sku for i in items), error_log)
    rows = build_rows(items, lookup, config.media_base_url)
    logger.info("pulled %d rows from sheet %s", len(rows), config.google_sheets.sheet_name)
    return Ok(rows)


def push_rows(gateway: SheetsGateway, rows: Sequence[Row]) -> Result[int]:
    result = gateway.push_values(to_sheet_values(rows))
    if isinstance(result, Ok):
        logger.info("pushed %d rows to sheet", result.value)
    return result
