from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

"""Templated media/store link notation.

Input  ``{{media url=<path>}}``            -> ``<media_base_url>/<path>``
Output ``{{store direct_url='<key>.html'}}`` from an absolute storefront URL
"""

__all__ = [
    "parse_media_url",
    "catalog_image_template",
    "product_url",
    "store_direct_url",
    "extract_string",
]

MEDIA_PREFIX = "{{media url="
_TRAILING_BRACES_RE = re.compile(r"\}\}\s*$")
_HTML_TAIL_RE = re.compile(r"/([^/]+)\.html$")


def extract_string(val: Any, fallback: str = "") -> str:
    """Coerce a literal value to a trimmed string ("" for None)."""
    if val is None:
        return fallback
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, float) and val.is_integer():
        val = int(val)
    return str(val).strip() or fallback


def parse_media_url(val: Any, media_base_url: str) -> str | None:
    """Normalise a media reference to an absolute URL.

    Returns None for None or blank input; non-template values are returned
    trimmed.
    """
    if val is None:
        return None
    s = str(val).strip()
    if s.startswith(MEDIA_PREFIX):
        out = _TRAILING_BRACES_RE.sub("", s)
        return media_base_url.rstrip("/") + "/" + out[len(MEDIA_PREFIX):]
    return s or None


def catalog_image_template(image_path: str, cache_hash: str) -> str:
    # catalog paths look like "/e/a/example.jpg" and sometimes carry escaped slashes
    path = image_path.replace("\\", "")
    return f"{MEDIA_PREFIX}catalog/product/cache/{cache_hash}{path}}}}}"


def product_url(store_base_url: str, url_key: str) -> str:
    return f"{store_base_url.rstrip('/')}/{url_key}.html"


def store_direct_url(url: str) -> str:
    """Re-wrap a resolved storefront URL as store link notation ("" if no key)."""
    if not url:
        return ""
    parts = urlsplit(url)
    if parts.scheme and parts.netloc:
        key = re.sub(r"\.html$", "", parts.path.lstrip("/"))
        return f"{{{{store direct_url='{key}.html'}}}}" if key else ""
    m = _HTML_TAIL_RE.search(url)
    if m:
        return f"{{{{store direct_url='{m.group(1)}.html'}}}}"
    return ""
