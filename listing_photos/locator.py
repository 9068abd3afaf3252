"""Finding the primary photo URL on a rendered Zillow listing page."""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from .config import IMAGE_CDN_HOST, DownloadConfig

logger = logging.getLogger("listing_photos")

HERO_IMAGE_SELECTOR = (
    'img[data-testid="media-stream-hero-photo"], img[alt*="home"], .media-stream img'
)
SCRIPT_IMAGE_PATTERN = re.compile(
    re.escape(IMAGE_CDN_HOST) + r"/fp/[^\"'\s\\]+"
)

LocatorStrategy = Callable[[BeautifulSoup, str], Optional[str]]


def og_image_strategy(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """Use the social-preview ``og:image`` tag when it points at the photo CDN."""
    tag = soup.find("meta", attrs={"property": "og:image"})
    content = (tag.get("content") or "").strip() if tag else ""
    if content and IMAGE_CDN_HOST in content:
        return content
    return None


def hero_image_strategy(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """Use the first hero/carousel image, provided it is served from the CDN."""
    img = soup.select_one(HERO_IMAGE_SELECTOR)
    if img is None:
        return None
    src = (img.get("src") or "").strip()
    if not src or src.startswith("data:"):
        return None
    absolute = urljoin(base_url, src)
    if IMAGE_CDN_HOST in absolute:
        return absolute
    return None


def script_payload_strategy(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """Dig a CDN photo path out of inline script data (e.g. ``__NEXT_DATA__``)."""
    for script in soup.find_all("script"):
        text = script.string or script.get_text() or ""
        match = SCRIPT_IMAGE_PATTERN.search(text)
        if match:
            return "https://" + match.group(0)
    return None


LOCATOR_STRATEGIES: Sequence[LocatorStrategy] = (
    og_image_strategy,
    hero_image_strategy,
    script_payload_strategy,
)


def find_image_url(
    html: str,
    base_url: str,
    strategies: Sequence[LocatorStrategy] = LOCATOR_STRATEGIES,
) -> Optional[str]:
    """Run each strategy against the page HTML and return the first hit."""
    soup = BeautifulSoup(html, "html.parser")
    for strategy in strategies:
        image_url = strategy(soup, base_url)
        if image_url:
            logger.info("Found image via %s: %s", strategy.__name__, image_url)
            return image_url
    return None


async def locate_image_url(
    page: Page,
    listing_url: str,
    config: DownloadConfig,
) -> Optional[str]:
    """Load a listing page in the shared browser tab and locate its photo.

    The page is navigated away from whatever it showed before. Errors never
    escape: a failed load or evaluation is logged and reported as no result.
    """
    try:
        logger.info("Loading Zillow page: %s", listing_url)
        await page.goto(
            listing_url,
            wait_until="domcontentloaded",
            timeout=config.navigation_timeout * 1000,
        )
        if config.settle_delay:
            await page.wait_for_timeout(int(config.settle_delay * 1000))
        html = await page.content()
        final_url = page.url or listing_url
    except PlaywrightTimeoutError as exc:
        logger.error("Timeout while loading %s: %s", listing_url, exc)
        return None
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("Failed to load page %s: %s", listing_url, exc)
        return None

    try:
        return find_image_url(html, final_url)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Unexpected error reading page %s", listing_url)
        return None
