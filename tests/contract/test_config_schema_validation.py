from __future__ import annotations

import json
import pathlib

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

import combo_tools.config.loader as loader

"""Config schema contract test."""

SCHEMA_PATH = loader.SCHEMA_PATH
EXAMPLE_CONFIG = pathlib.Path(__file__).resolve().parents[2] / "config" / "combo.yml"


def _schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_shipped_example_config_is_valid():
    config = yaml.safe_load(EXAMPLE_CONFIG.read_text(encoding="utf-8"))
    jsonschema.validate(config, _schema())


def test_minimal_config_is_valid():
    jsonschema.validate(
        {"media_base_url": "https://m.example.com", "store_base_url": "https://s.example.com"},
        _schema(),
    )


@pytest.mark.parametrize(
    "config",
    [
        {"media_base_url": "https://m.example.com"},
        {"media_base_url": "", "store_base_url": "https://s.example.com"},
        {"media_base_url": "m", "store_base_url": "s", "scrape": {"concurrency": 9}},
        {"media_base_url": "m", "store_base_url": "s", "product_api": {"page_size": 0}},
        {"media_base_url": "m", "store_base_url": "s", "ai": {"api_key": "secrets stay in env"}},
        {"media_base_url": "m", "store_base_url": "s", "history": {"max_entries": 0}},
    ],
)
def test_invalid_configs_rejected(config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, _schema())
