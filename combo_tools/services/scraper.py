from __future__ import annotations

import asyncio
import logging
import re
from urllib.parse import urljoin, urlsplit
from urllib.robotparser import RobotFileParser

import requests
from playwright.async_api import BrowserContext, Route, async_playwright
from playwright.async_api import Error as PlaywrightError

from combo_tools.models.config_models import ScrapeConfig
from combo_tools.models.results import ScrapeDot, ScrapeResult

from .progress import ProgressTracker

"""Best-effort scraper for existing combo-guide pages.

One headless browser and one context serve every URL; heavy resources are
blocked at the context level. Each page yields the main image of its
``.combo-guide`` block and the left/top of every ``.dot`` inside it. A page
that fails (robots disallow, timeout, missing block) yields an empty
result without affecting the others.
"""

__all__ = [
    "RobotsCache",
    "absolutize",
    "first_srcset_entry",
    "normalize_urls",
    "scrape_pages",
    "scrape",
]

logger = logging.getLogger(__name__)

BLOCKED_RESOURCES = frozenset({"image", "media", "font", "stylesheet"})
IMAGE_ATTRS = ("src", "data-src", "data-original", "data-lazy")
_BG_URL_RE = re.compile(r"""url\(["']?(.*?)["']?\)""", re.IGNORECASE)

_BACKGROUND_JS = """(el) => {
  const get = (e) => getComputedStyle(e).backgroundImage;
  const self = get(el);
  if (self && self !== "none") return self;
  const child = el.querySelector("*");
  return child ? get(child) : null;
}"""

_DOTS_JS = """(root) => {
  const out = [];
  root.querySelectorAll(".dot").forEach((el) => {
    let left = el.style.left;
    let top = el.style.top;
    if (!left || !top) {
      const cs = getComputedStyle(el);
      left = left || cs.left;
      top = top || cs.top;
    }
    if (left && top) out.push({ left, top });
  });
  return out;
}"""


class RobotsCache:
    """robots.txt rules cached per origin; unreachable robots.txt allows all."""

    def __init__(self, user_agent: str, session: requests.Session | None = None, timeout: float = 10.0) -> None:
        self.user_agent = user_agent
        self._session = session or requests.Session()
        self._timeout = timeout
        self._parsers: dict[str, RobotFileParser] = {}

    def allowed(self, url: str) -> bool:
        parts = urlsplit(url)
        robots_url = f"{parts.scheme}://{parts.netloc}/robots.txt"
        parser = self._parsers.get(robots_url)
        if parser is None:
            try:
                resp = self._session.get(robots_url, timeout=self._timeout)
            except requests.RequestException as e:
                logger.debug("robots.txt unreachable %s: %s", robots_url, e)
                return True
            if resp.status_code != 200:
                return True
            parser = RobotFileParser(robots_url)
            parser.parse(resp.text.splitlines())
            self._parsers[robots_url] = parser
        return parser.can_fetch(self.user_agent, url)


def absolutize(base: str, raw: str | None) -> str | None:
    if not raw:
        return None
    return urljoin(base, raw)


def first_srcset_entry(srcset: str | None) -> str | None:
    if not srcset:
        return None
    first = srcset.split(",")[0].strip()
    return first.split()[0] if first else None


def normalize_urls(urls: list[str], max_urls: int) -> list[str]:
    """De-duplicate and cap the URL list.

    Raises:
        ValueError: a URL is not absolute http(s)
    """
    unique = list(dict.fromkeys(u.strip() for u in urls if u and u.strip()))
    for u in unique:
        parts = urlsplit(u)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"not a valid URL: {u}")
    if len(unique) > max_urls:
        logger.warning("scrape limited to the first %d of %d urls", max_urls, len(unique))
    return unique[:max_urls]


async def _block_heavy(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCES:
        await route.abort()
    else:
        await route.continue_()


async def _scrape_one(
    page_url: str,
    context: BrowserContext,
    robots: RobotsCache,
    config: ScrapeConfig,
) -> ScrapeResult:
    empty = ScrapeResult(url=page_url, image=None)
    if not await asyncio.to_thread(robots.allowed, page_url):
        logger.info("robots.txt disallows %s", page_url)
        return empty

    page = await context.new_page()
    try:
        await page.goto(page_url, wait_until="domcontentloaded", timeout=config.navigation_timeout_ms)
        target = page.locator(".combo-guide").first
        await target.wait_for(state="attached", timeout=config.selector_timeout_ms)

        img = target.locator("img.btn-trigger").first
        src = None
        if await img.count():
            for attr in IMAGE_ATTRS:
                src = await img.get_attribute(attr)
                if src:
                    break
            if not src:
                src = first_srcset_entry(await img.get_attribute("srcset"))
        if not src:
            bg = await target.evaluate(_BACKGROUND_JS)
            m = _BG_URL_RE.search(bg or "")
            if m and m.group(1):
                src = m.group(1)

        image = absolutize(page.url, src)
        title = await page.title() or None
        raw_dots = await target.evaluate(_DOTS_JS)
        dots = [ScrapeDot(top=str(d["top"]), left=str(d["left"])) for d in raw_dots or []]
        logger.info("scraped %s: image=%s dots=%d", page_url, image, len(dots))
        return ScrapeResult(url=page_url, image=image, dots=dots, title=title)
    except PlaywrightError as e:
        logger.warning("scrape failed %s: %s", page_url, e)
        return empty
    finally:
        await page.close()


async def scrape_pages(
    urls: list[str],
    config: ScrapeConfig,
    robots: RobotsCache | None = None,
) -> list[ScrapeResult]:
    """Scrape ``urls`` with at most ``config.concurrency`` pages open; keeps input order."""
    targets = normalize_urls(urls, config.max_urls)
    if not targets:
        return []
    robots = robots or RobotsCache(config.user_agent)
    semaphore = asyncio.Semaphore(config.concurrency)

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=True,
            args=["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"],
        )
        try:
            context = await browser.new_context(
                user_agent=config.user_agent,
                locale="en-US",
                java_script_enabled=True,
            )
            await context.route("**/*", _block_heavy)
            with ProgressTracker(len(targets), description="Scraping", unit="page") as progress:

                async def bounded(url: str) -> ScrapeResult:
                    async with semaphore:
                        result = await _scrape_one(url, context, robots, config)
                    progress.advance(success=result.image is not None, label=urlsplit(url).path[-30:])
                    return result

                results = await asyncio.gather(*(bounded(u) for u in targets))
            await context.close()
        finally:
            await browser.close()
    return list(results)


def scrape(urls: list[str], config: ScrapeConfig) -> list[ScrapeResult]:
    return asyncio.run(scrape_pages(urls, config))
