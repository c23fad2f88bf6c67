# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pytest

from combo_tools.models.combo_row import DotSku, Row
from combo_tools.models.config_models import ComboConfig


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # .env overrides must not leak into tests from the developer shell
    for var in (
        "MEDIA_URL",
        "BASE_URL",
        "END_POINT",
        "GEMINI_API_KEY",
        "GOOGLE_SHEETS_SERVICE_ACCOUNT_EMAIL",
        "GOOGLE_SHEETS_PRIVATE_KEY",
        "CROSSSELL_TOKEN",
        "SCRAPE_CONCURRENCY",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def sample_config_yaml() -> str:
    return """media_base_url: https://media.example.com/media
store_base_url: https://shop.example.com
product_api:
  page_size: 100
google_sheets:
  spreadsheet_id: sheet-123
  sheet_name: combo
scrape:
  concurrency: 4
crosssell:
  endpoint: https://api.example.com
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "combo.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def combo_config() -> ComboConfig:
    return ComboConfig(
        media_base_url="https://media.example.com/media",
        store_base_url="https://shop.example.com",
    )


@pytest.fixture()
def sample_rows() -> list[Row]:
    return [
        Row(
            product_sku="A-1",
            prod_name="Sofa",
            url="https://shop.example.com/sofa.html",
            image="https://media.example.com/media/sofa.jpg",
            dot_skus=(
                DotSku("B-1", "50%", "30%"),
                DotSku("B-2", "10%", ""),
                DotSku("B-3", "", ""),
            ),
        ),
        Row(product_sku="A-2", prod_name="Desk, oak", image=None, dot_skus=(DotSku("C-1", "", "75.5%"),)),
    ]
