"""Configuration objects and constants for the photo downloader."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_INPUT = "data/homes.csv"
DEFAULT_OUTPUT_DIR = "images"

LISTING_HOST = "zillow.com"
LISTING_ROOT = "https://www.zillow.com/"
IMAGE_CDN_HOST = "photos.zillowstatic.com"

# Sent with image downloads; the browser context uses its own newer string.
FETCH_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LISTING_URL_FIELDS = ("Zillow URL", "Zillow", "Listing URL", "URL")
VIABLE_FIELDS = ("Viable?", "Viable")
ADDRESS_FIELDS = ("Address", "Street Address", "street")


@dataclass
class DownloadConfig:
    """Settings that control a single photo download batch."""

    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    width: int = 768
    height: int = 576
    quality: int = 85
    request_delay: float = 2.0
    direct_request_delay: float = 0.5
    navigation_timeout: float = 30.0
    settle_delay: float = 3.0
    request_timeout: float = 20.0
    use_browser: bool = True
    headless: bool = True
    viable_only: bool = False
