from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from combo_tools.models.config_models import (
    AiConfig,
    ComboConfig,
    CrossSellConfig,
    GoogleSheetsConfig,
    ProductApiConfig,
    ScrapeConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config/combo.yml
- Apply environment overrides (MEDIA_URL, BASE_URL, END_POINT, ...)
- Validate against config_schema.json
- Apply defaults and build ComboConfig
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/combo.yml")

# env var -> (section or None, key)
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "MEDIA_URL": (None, "media_base_url"),
    "BASE_URL": (None, "store_base_url"),
    "END_POINT": ("crosssell", "endpoint"),
}

SCRAPE_CONCURRENCY_MAX = 8


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the data
            fails validation (missing required keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    merged = dict(data)
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        if section is None:
            merged[key] = value
        else:
            sub = dict(merged.get(section) or {})
            sub[key] = value
            merged[section] = sub
    return merged


def _clamp_concurrency(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return max(1, min(SCRAPE_CONCURRENCY_MAX, value))


def load_config(path: Path = DEFAULT_CONFIG_PATH, env: Mapping[str, str] | None = None) -> ComboConfig:
    if env is None:
        env = os.environ
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    data = _apply_env_overrides(data, env)
    _validate_config_schema(data)

    api_raw = data.get("product_api") or {}
    product_api = ProductApiConfig(**api_raw)

    sheets_raw = data.get("google_sheets") or {}
    private_key = env.get("GOOGLE_SHEETS_PRIVATE_KEY")
    google_sheets = GoogleSheetsConfig(
        spreadsheet_id=sheets_raw.get("spreadsheet_id"),
        sheet_name=sheets_raw.get("sheet_name"),
        read_range_rows=sheets_raw.get("read_range_rows", 10000),
        service_account_email=env.get("GOOGLE_SHEETS_SERVICE_ACCOUNT_EMAIL"),
        # keys pasted into .env carry literal "\n"
        private_key=private_key.replace("\\n", "\n") if private_key else None,
    )

    scrape_raw = dict(data.get("scrape") or {})
    if env.get("SCRAPE_CONCURRENCY"):
        scrape_raw["concurrency"] = _clamp_concurrency(
            env["SCRAPE_CONCURRENCY"], ScrapeConfig.concurrency
        )
    scrape = ScrapeConfig(**scrape_raw)

    ai_raw = data.get("ai") or {}
    ai = AiConfig(**ai_raw, api_key=env.get("GEMINI_API_KEY"))

    cs_raw = data.get("crosssell") or {}
    crosssell = CrossSellConfig(
        endpoint=cs_raw.get("endpoint"),
        timeout_seconds=cs_raw.get("timeout_seconds", 15.0),
        token=env.get("CROSSSELL_TOKEN"),
    )

    history_raw = data.get("history") or {}

    return ComboConfig(
        media_base_url=str(data["media_base_url"]).rstrip("/"),
        store_base_url=str(data["store_base_url"]).rstrip("/"),
        product_api=product_api,
        google_sheets=google_sheets,
        scrape=scrape,
        ai=ai,
        crosssell=crosssell,
        max_history=history_raw.get("max_entries"),
    )
