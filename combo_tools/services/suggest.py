from __future__ import annotations

import io
import logging
import re
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

import httpx
import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from PIL import Image, UnidentifiedImageError

from combo_tools.models.combo_row import Row
from combo_tools.models.config_models import AiConfig
from combo_tools.models.results import (
    Err,
    Ok,
    PositionSuggestion,
    RateLimitHint,
    Result,
    SuggestionBatch,
    UpstreamError,
)

from .progress import ProgressTracker

"""AI-assisted dot position suggestion.

One reference (main product) image plus N candidate (dot product) images.
Each candidate is a separate vision request; the free-text answer is
matched for ``Left: X%`` / ``Top: Y%``. A candidate with no match gets
``position=None`` and does not fail the batch. Rate-limit errors carry a
``retryDelay`` value that is surfaced as a RateLimitHint.
"""

__all__ = [
    "PositionSuggester",
    "RowSuggestion",
    "apply_suggestions",
    "extract_rate_limit",
    "parse_position_response",
    "prepare_image",
    "suggest_positions_for_row",
    "PROMPT",
]

logger = logging.getLogger(__name__)

SERVICE = "ai"
JPEG_QUALITY = 80
IMAGE_TIMEOUT_SECONDS = 20.0

PROMPT = (
    "The first image is the main environment image. The second image is an object "
    "that appears within that environment.\n\n"
    "Task: Find the center point of the object (from the second image) inside the "
    "environment (first image).\n\n"
    "Output Requirements:\n"
    "- Provide the position as relative percentages of the environment image's width and height.\n"
    '- Format the output EXACTLY as: "Left: <X>%, Top: <Y>%" where X and Y are numbers (decimals allowed).\n'
    '- If the object is not found, return "Not found".'
)

_LEFT_RE = re.compile(r"Left:?\s*([\d.]+)\s*%", re.IGNORECASE)
_TOP_RE = re.compile(r"Top:?\s*([\d.]+)\s*%", re.IGNORECASE)
_RETRY_DELAY_RE = re.compile(r"""["']retryDelay["']\s*:\s*["']([^"']+)["']""")


def parse_position_response(text: str) -> tuple[str, str] | None:
    """Return (top, left) with "%" suffix, or None unless both are present."""
    left = _LEFT_RE.search(text or "")
    top = _TOP_RE.search(text or "")
    if not left or not top:
        return None
    return f"{top.group(1)}%", f"{left.group(1)}%"


def extract_rate_limit(message: str) -> RateLimitHint | None:
    m = _RETRY_DELAY_RE.search(message or "")
    return RateLimitHint(m.group(1)) if m else None


def prepare_image(data: bytes, max_dimension: int) -> tuple[bytes, str]:
    """Fit inside ``max_dimension`` (never enlarge) and re-encode as JPEG.

    Undecodable input is passed through unchanged as ``image/jpeg``.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.thumbnail((max_dimension, max_dimension))
            if img.mode in ("RGBA", "LA", "P"):
                rgba = img.convert("RGBA")
                background = Image.new("RGB", rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[3])
                out = background
            elif img.mode != "RGB":
                out = img.convert("RGB")
            else:
                out = img
            buf = io.BytesIO()
            out.save(buf, "JPEG", quality=JPEG_QUALITY)
            return buf.getvalue(), "image/jpeg"
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("image resize skipped: %s", e)
        return data, "image/jpeg"


class PositionSuggester:
    def __init__(
        self,
        config: AiConfig,
        client: Any = None,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._session = session or requests.Session()

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self._config.api_key)
        return self._client

    def _load_part(self, url: str) -> types.Part:
        resp = self._session.get(url, timeout=IMAGE_TIMEOUT_SECONDS)
        resp.raise_for_status()
        data, mime = prepare_image(resp.content, self._config.max_image_dimension)
        return types.Part.from_bytes(data=data, mime_type=mime)

    def _suggest_one(self, main_part: types.Part, sku: str, image_url: str) -> PositionSuggestion:
        try:
            candidate = self._load_part(image_url)
            response = self.client.models.generate_content(
                model=self._config.model,
                contents=[main_part, candidate, PROMPT],
            )
        except genai_errors.APIError as e:
            message = str(e)
            logger.debug("suggestion failed for %s: %s", sku, message)
            return PositionSuggestion(sku, None, message, extract_rate_limit(message))
        except requests.RequestException as e:
            return PositionSuggestion(sku, None, f"image fetch failed: {e}")
        except (httpx.HTTPError, ValueError, OSError) as e:
            logger.debug("suggestion failed for %s: %s", sku, e)
            return PositionSuggestion(sku, None, f"{type(e).__name__}: {e}")
        raw = response.text or "No response generated"
        return PositionSuggestion(sku, parse_position_response(raw), raw)

    def suggest(self, main_image: str, candidates: Mapping[str, str]) -> Result[SuggestionBatch]:
        """Suggest a position for each ``sku -> image URL`` candidate.

        Output order follows ``candidates``. Only a missing key or an
        unreachable reference image fails the whole batch.
        """
        if not self._config.api_key:
            return Err(UpstreamError(SERVICE, "GEMINI_API_KEY is not configured"))
        if not main_image:
            return Err(UpstreamError(SERVICE, "main product image is missing"))
        if not candidates:
            return Err(UpstreamError(SERVICE, "no dot product images found"))
        try:
            main_part = self._load_part(main_image)
        except requests.RequestException as e:
            return Err(UpstreamError(SERVICE, f"failed to fetch main image: {e}"))

        by_sku: dict[str, PositionSuggestion] = {}
        workers = max(1, min(self._config.concurrency, len(candidates)))
        with ProgressTracker(len(candidates), description="Suggesting", unit="dot") as progress:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    executor.submit(self._suggest_one, main_part, sku, url): sku
                    for sku, url in candidates.items()
                }
                for future in as_completed(futures):
                    suggestion = future.result()
                    by_sku[futures[future]] = suggestion
                    progress.advance(success=suggestion.position is not None, label=suggestion.sku)
        return Ok(SuggestionBatch([by_sku[sku] for sku in candidates]))


@dataclass(frozen=True)
class RowSuggestion:
    row: Row
    batch: SuggestionBatch


def apply_suggestions(row: Row, batch: SuggestionBatch) -> Row:
    """Copy found positions onto the matching dots; other dots are untouched."""
    found = {s.sku: s.position for s in batch.suggestions if s.position is not None}
    dots = [d.with_position(*found[d.sku]) if d.sku in found else d for d in row.dot_skus]
    return row.with_dots(dots)


def suggest_positions_for_row(
    suggester: PositionSuggester,
    row: Row,
    images: Mapping[str, str | None],
) -> Result[RowSuggestion]:
    """Run suggestions for the row's dots that have an image; never touches a store."""
    candidates = {d.sku: images[d.sku] for d in row.visible_dots if images.get(d.sku)}
    result = suggester.suggest(row.image or "", candidates)  # type: ignore[arg-type]
    if isinstance(result, Err):
        return result
    batch = result.value
    if batch.rate_limit is not None:
        logger.warning(
            "AI rate limit hit for %s (retry after %s); %d/%d positions found",
            row.product_sku,
            batch.rate_limit.retry_delay,
            batch.found_count,
            len(batch.suggestions),
        )
    return Ok(RowSuggestion(apply_suggestions(row, batch), batch))
