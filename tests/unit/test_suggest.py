from __future__ import annotations

import io
from unittest.mock import MagicMock

import httpx
import pytest
import requests
from google.genai import errors as genai_errors
from PIL import Image

from combo_tools.models.combo_row import DotSku, Row
from combo_tools.models.config_models import AiConfig
from combo_tools.models.results import Err, Ok, PositionSuggestion, SuggestionBatch
from combo_tools.services.suggest import (
    PositionSuggester,
    apply_suggestions,
    extract_rate_limit,
    parse_position_response,
    prepare_image,
    suggest_positions_for_row,
)


def _png(size=(40, 20), mode="RGBA") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, (255, 0, 0, 0) if mode == "RGBA" else (255, 0, 0)).save(buf, "PNG")
    return buf.getvalue()


def _session() -> MagicMock:
    resp = MagicMock()
    resp.content = _png()
    session = MagicMock()
    session.get.return_value = resp
    return session


def _genai_client(*answers) -> MagicMock:
    client = MagicMock()
    client.models.generate_content.side_effect = [MagicMock(text=a) if isinstance(a, str) else a for a in answers]
    return client


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Left: 30%, Top: 50.5%", ("50.5%", "30%")),
        ("top 12 % ... left:7%", ("12%", "7%")),
        ("Left: 30%", None),
        ("Not found", None),
        ("", None),
    ],
)
def test_parse_position_response(text, expected):
    assert parse_position_response(text) == expected


def test_extract_rate_limit():
    hint = extract_rate_limit("""429 RESOURCE_EXHAUSTED. {'details': [{'retryDelay': '49s'}]}""")
    assert hint.retry_delay == "49s"
    assert hint.seconds == 49.0
    assert extract_rate_limit("500 INTERNAL") is None


def test_prepare_image_downscales_and_flattens_alpha():
    data, mime = prepare_image(_png((2000, 1000)), 1024)
    assert mime == "image/jpeg"
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"
        assert img.size == (1024, 512)
        assert img.getpixel((0, 0)) == pytest.approx((255, 255, 255), abs=2)


def test_prepare_image_never_enlarges():
    data, _ = prepare_image(_png((40, 20), mode="RGB"), 1024)
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == (40, 20)


def test_prepare_image_passes_through_garbage():
    assert prepare_image(b"not an image", 1024) == (b"not an image", "image/jpeg")


def test_suggest_requires_api_key_image_and_candidates():
    assert isinstance(PositionSuggester(AiConfig(), client=MagicMock()).suggest("m.jpg", {"B": "b.jpg"}), Err)
    suggester = PositionSuggester(AiConfig(api_key="k"), client=MagicMock(), session=_session())
    assert isinstance(suggester.suggest("", {"B": "b.jpg"}), Err)
    assert isinstance(suggester.suggest("m.jpg", {}), Err)


def test_suggest_main_image_fetch_failure_is_err():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("down")
    suggester = PositionSuggester(AiConfig(api_key="k"), client=MagicMock(), session=session)
    result = suggester.suggest("https://m/main.jpg", {"B": "https://m/b.jpg"})
    assert isinstance(result, Err)
    assert "main image" in result.error.message


def test_suggest_keeps_candidate_order_and_isolates_misses():
    client = _genai_client("Left: 30%, Top: 50%", "Not found")
    suggester = PositionSuggester(AiConfig(api_key="k", concurrency=1), client=client, session=_session())

    result = suggester.suggest("https://m/main.jpg", {"B": "https://m/b.jpg", "C": "https://m/c.jpg"})

    assert isinstance(result, Ok)
    batch = result.value
    assert [s.sku for s in batch.suggestions] == ["B", "C"]
    assert batch.suggestions[0].position == ("50%", "30%")
    assert batch.suggestions[1].position is None
    assert batch.found_count == 1
    assert batch.fail_count == 1
    assert client.models.generate_content.call_args.kwargs["model"] == "gemini-2.5-flash-lite"


def test_suggest_surfaces_rate_limit():
    error = genai_errors.ClientError(
        429,
        {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED", "details": [{"retryDelay": "7s"}]}},
    )
    client = _genai_client(error)
    suggester = PositionSuggester(AiConfig(api_key="k"), client=client, session=_session())

    result = suggester.suggest("https://m/main.jpg", {"B": "https://m/b.jpg"})

    assert isinstance(result, Ok)
    assert result.value.rate_limit.retry_delay == "7s"
    assert result.value.suggestions[0].position is None


@pytest.mark.parametrize("error", [httpx.ConnectError("connection reset"), ValueError("unexpected payload")])
def test_suggest_isolates_transport_and_sdk_errors(error):
    client = _genai_client(error, "Left: 10%, Top: 20%")
    suggester = PositionSuggester(AiConfig(api_key="k", concurrency=1), client=client, session=_session())

    result = suggester.suggest("https://m/main.jpg", {"B": "https://m/b.jpg", "C": "https://m/c.jpg"})

    assert isinstance(result, Ok)
    first, second = result.value.suggestions
    assert first.position is None
    assert type(error).__name__ in first.raw_response
    assert second.position == ("20%", "10%")


def test_apply_suggestions_only_touches_found_dots():
    row = Row("A", dot_skus=(DotSku("B", "1%", "1%"), DotSku("C")))
    batch = SuggestionBatch(
        [PositionSuggestion("B", None, "Not found"), PositionSuggestion("C", ("5%", "6%"), "Left: 6%, Top: 5%")]
    )
    updated = apply_suggestions(row, batch)
    assert updated.dot_skus == (DotSku("B", "1%", "1%"), DotSku("C", "5%", "6%"))
    assert row.dot_skus[1] == DotSku("C")


def test_suggest_positions_for_row_uses_dots_with_images():
    row = Row("A", image="https://m/main.jpg", dot_skus=(DotSku("B"), DotSku("C"), DotSku("")))
    suggester = MagicMock()
    suggester.suggest.return_value = Ok(SuggestionBatch([PositionSuggestion("B", ("1%", "2%"), "x")]))

    result = suggest_positions_for_row(suggester, row, {"B": "https://m/b.jpg", "C": None})

    suggester.suggest.assert_called_once_with("https://m/main.jpg", {"B": "https://m/b.jpg"})
    assert result.value.row.dot_skus[0] == DotSku("B", "1%", "2%")
