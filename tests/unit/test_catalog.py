from __future__ import annotations

from unittest.mock import MagicMock, patch

import requests

from combo_tools.logging.error_log import ErrorLogBuffer
from combo_tools.models.results import Err, Ok
from combo_tools.services.catalog import PRODUCT_FIELDS, CatalogClient, resolve_metadata, unique_skus


def _response(status: int = 200, payload=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


def _client(combo_config, resp=None, exc=None) -> tuple[CatalogClient, MagicMock]:
    session = MagicMock()
    if exc is not None:
        session.post.side_effect = exc
    else:
        session.post.return_value = resp
    return CatalogClient(combo_config, session=session), session


ITEMS_PAYLOAD = [
    {
        "data": {
            "items": [
                {"sku": "X", "name": "Sofa X", "url_key": "sofa-x", "image": "\\/s\\/x.jpg"},
                {"sku": "Z", "name": "", "url_key": "", "image": ""},
            ]
        }
    }
]


def test_unique_skus():
    assert unique_skus([" A ", "", "B", "A", None]) == ["A", "B"]


def test_fetch_products_posts_request_body(combo_config):
    client, session = _client(combo_config, _response(payload=ITEMS_PAYLOAD))
    result = client.fetch_products(["X", "Y"])

    assert isinstance(result, Ok)
    session.post.assert_called_once_with(
        "https://shop.example.com/index.php/rest/V1/api/mrl/products/list",
        json={"pids": ["X", "Y"], "fields": PRODUCT_FIELDS, "page": 1, "page_size": 100},
        timeout=15.0,
    )
    first = result.value[0]
    assert first.sku == "X"
    assert first.name == "Sofa X"
    assert first.url == "https://shop.example.com/sofa-x.html"
    assert first.image == (
        "https://media.example.com/media/catalog/product/cache/912f4218b83600a6f47af6c76f1f9667/s/x.jpg"
    )
    assert result.value[1].image is None
    assert result.value[1].url == ""


def test_fetch_products_empty_input_skips_request(combo_config):
    client, session = _client(combo_config, _response(payload=ITEMS_PAYLOAD))
    assert client.fetch_products([]) == Ok([])
    session.post.assert_not_called()


def test_fetch_products_non_200(combo_config):
    client, _ = _client(combo_config, _response(status=503, text="busy"))
    result = client.fetch_products(["X"])
    assert isinstance(result, Err)
    assert result.error.service == "catalog"
    assert result.error.status == 503
    assert "503" in result.error.message


def test_fetch_products_request_exception(combo_config):
    client, _ = _client(combo_config, exc=requests.ConnectionError("refused"))
    result = client.fetch_products(["X"])
    assert isinstance(result, Err)
    assert result.error.status is None
    assert "refused" in result.error.message


def test_fetch_products_invalid_payloads(combo_config):
    for payload in (
        ValueError("bad json"),
        [],
        {"data": {}},
        [{"data": {}}],
        [{"data": {"items": "x"}}],
        [{"data": "maintenance"}],
        [{"data": ["x"]}],
        [{"data": 3}],
    ):
        client, _ = _client(combo_config, _response(payload=payload))
        assert isinstance(client.fetch_products(["X"]), Err), payload


def test_resolve_metadata_non_object_data_degrades(combo_config):
    client, _ = _client(combo_config, _response(payload=[{"data": "maintenance"}]))
    lookup = resolve_metadata(client, ["X"])
    assert lookup.sku_to_name == {}
    assert lookup.sku_to_image == {}


def test_resolve_metadata_missing_sku_has_no_key(combo_config):
    client, _ = _client(combo_config, _response(payload=[{"data": {"items": ITEMS_PAYLOAD[0]["data"]["items"][:1]}}]))
    lookup = resolve_metadata(client, ["X", "Y"])
    assert lookup.sku_to_name == {"X": "Sofa X"}
    assert "Y" not in lookup.sku_to_url
    assert "Y" not in lookup.sku_to_image


def test_resolve_metadata_degrades_and_logs_once(combo_config, temp_workdir):
    client, _ = _client(combo_config, _response(status=500, text="boom"))
    error_log = ErrorLogBuffer()

    with patch("combo_tools.services.catalog.logger") as mock_logger:
        lookup = resolve_metadata(client, ["X", "Y", "X"], error_log)

    assert lookup.empty
    mock_logger.warning.assert_called_once()
    assert len(error_log) == 1
    path = error_log.flush()
    line = path.read_text(encoding="utf-8")
    assert '"target": "X,Y"' in line
    assert '"error_type": "UPSTREAM_HTTP_ERROR"' in line


def test_resolve_metadata_without_skus_makes_no_call(combo_config):
    client, session = _client(combo_config, _response(payload=ITEMS_PAYLOAD))
    assert resolve_metadata(client, ["", "  "]).empty
    session.post.assert_not_called()
