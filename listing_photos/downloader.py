"""Batch orchestration: browser lifecycle and per-listing photo downloads."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import AsyncExitStack, asynccontextmanager
from functools import partial
from pathlib import Path
from typing import (
    AsyncContextManager,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    List,
    Optional,
)

import requests
from playwright.async_api import Page, async_playwright

from .config import BROWSER_USER_AGENT, DownloadConfig
from .guesser import guess_image_urls
from .images import Fetcher, download_and_save, fetch_image
from .locator import locate_image_url
from .models import BatchSummary, ListingRecord, RecordResult, RecordStatus
from .records import filter_viable

logger = logging.getLogger("listing_photos")

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]

Locator = Callable[[Page, str, DownloadConfig], Awaitable[Optional[str]]]
SessionFactory = Callable[[DownloadConfig], AsyncContextManager[Page]]


@asynccontextmanager
async def browser_session(config: DownloadConfig) -> AsyncIterator[Page]:
    """Launch Chromium and yield one page that is reused for every listing."""
    async with async_playwright() as playwright:
        logger.info("Launching browser...")
        browser = await playwright.chromium.launch(
            headless=config.headless, args=LAUNCH_ARGS
        )
        try:
            context = await browser.new_context(
                user_agent=BROWSER_USER_AGENT,
                viewport={"width": 1280, "height": 900},
                locale="en-US",
            )
            page = await context.new_page()
            page.set_default_navigation_timeout(config.navigation_timeout * 1000)
            page.on("pageerror", lambda exc: logger.debug("Page error: %s", exc))
            yield page
        finally:
            await browser.close()
            logger.debug("Browser closed")


def image_path(config: DownloadConfig, zpid: str) -> Path:
    return config.output_dir / f"{zpid}.jpg"


def _precheck(record: ListingRecord, config: DownloadConfig) -> Optional[RecordResult]:
    """Return a skip result, or None when the record needs work."""
    zpid = record.zpid
    if not zpid:
        if record.listing_url:
            logger.info("Could not extract zpid from URL: %s", record.listing_url)
        return RecordResult(zpid=None, status=RecordStatus.SKIPPED_NO_KEY)
    if image_path(config, zpid).exists():
        logger.info("Image already exists for zpid %s, skipping...", zpid)
        return RecordResult(zpid=zpid, status=RecordStatus.SKIPPED_EXISTING)
    return None


async def process_with_browser(
    record: ListingRecord,
    page: Page,
    config: DownloadConfig,
    locator: Locator,
    fetcher: Fetcher,
) -> RecordResult:
    """Locate, download, and store the photo for one listing via the browser."""
    skipped = _precheck(record, config)
    if skipped:
        return skipped
    zpid = record.zpid
    destination = image_path(config, zpid)
    logger.info("Processing zpid %s...", zpid)

    image_url = await locator(page, record.listing_url, config)
    if not image_url:
        logger.error("Could not find image URL for zpid %s", zpid)
        return RecordResult(zpid=zpid, status=RecordStatus.NOT_FOUND)

    if download_and_save(image_url, destination, fetcher, config):
        return RecordResult(
            zpid=zpid,
            status=RecordStatus.SAVED,
            image_url=image_url,
            output_path=destination,
        )
    logger.error("Failed to download image for zpid %s", zpid)
    return RecordResult(zpid=zpid, status=RecordStatus.FAILED, image_url=image_url)


def process_direct(
    record: ListingRecord,
    config: DownloadConfig,
    fetcher: Fetcher,
) -> RecordResult:
    """Try the guessed static CDN URLs for one listing, first success wins."""
    skipped = _precheck(record, config)
    if skipped:
        return skipped
    zpid = record.zpid
    destination = image_path(config, zpid)
    for image_url in guess_image_urls(zpid):
        try:
            saved = download_and_save(image_url, destination, fetcher, config)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error saving %s for zpid %s", image_url, zpid)
            continue
        if saved:
            return RecordResult(
                zpid=zpid,
                status=RecordStatus.SAVED,
                image_url=image_url,
                output_path=destination,
            )
    logger.warning("No direct image URL worked for zpid %s", zpid)
    return RecordResult(zpid=zpid, status=RecordStatus.NOT_FOUND)


async def _pause(seconds: float, stop_event: Optional[asyncio.Event]) -> None:
    if seconds <= 0:
        return
    if stop_event is None:
        await asyncio.sleep(seconds)
        return
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


async def _run_records(
    records: Iterable[ListingRecord],
    summary: BatchSummary,
    handle: Callable[[ListingRecord], Awaitable[RecordResult]],
    delay: float,
    stop_event: Optional[asyncio.Event],
) -> None:
    """Process records one at a time, isolating failures to their record."""
    for record in records:
        if stop_event is not None and stop_event.is_set():
            logger.warning("Stop requested; ending batch early")
            summary.cancelled = True
            return
        try:
            result = await handle(record)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error processing zpid %s", record.zpid)
            result = RecordResult(zpid=record.zpid, status=RecordStatus.FAILED)
        summary.results.append(result)
        if result.did_network_work:
            await _pause(delay, stop_event)


async def run_batch(
    records: Iterable[ListingRecord],
    config: DownloadConfig,
    *,
    session_factory: SessionFactory = browser_session,
    locator: Locator = locate_image_url,
    fetcher: Optional[Fetcher] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> BatchSummary:
    """Download a photo for every listing that does not have one yet.

    Uses a single browser tab when one can be launched and falls back to
    guessing static CDN URLs otherwise. A failure on one listing is logged
    and never stops the rest of the batch.
    """
    start = time.perf_counter()
    summary = BatchSummary()
    records = list(records)

    pending: List[ListingRecord] = []
    if config.viable_only:
        viable = {id(record) for record in filter_viable(records)}
        for record in records:
            if id(record) in viable:
                pending.append(record)
            else:
                summary.results.append(
                    RecordResult(zpid=record.zpid, status=RecordStatus.FILTERED)
                )
        logger.info("Filtered %d homes to %d viable homes", len(records), len(pending))
    else:
        pending = records

    config.output_dir.mkdir(parents=True, exist_ok=True)

    with requests.Session() as http:
        if fetcher is None:
            fetcher = partial(fetch_image, session=http, timeout=config.request_timeout)

        async with AsyncExitStack() as stack:
            page: Optional[Page] = None
            if config.use_browser:
                try:
                    page = await stack.enter_async_context(session_factory(config))
                except Exception as exc:  # pylint: disable=broad-except
                    logger.error("Failed to launch browser: %s", exc)
                    logger.info(
                        "Run 'playwright install chromium' to enable the browser path, "
                        "or save each listing's photo manually as <zpid>.jpg in %s",
                        config.output_dir,
                    )

            if page is not None:
                summary.used_browser = True

                async def browse(record: ListingRecord) -> RecordResult:
                    return await process_with_browser(record, page, config, locator, fetcher)

                await _run_records(pending, summary, browse, config.request_delay, stop_event)
            else:
                logger.info(
                    "Attempting direct image downloads (may fail due to Zillow restrictions)..."
                )

                async def guess(record: ListingRecord) -> RecordResult:
                    return process_direct(record, config, fetcher)

                await _run_records(
                    pending, summary, guess, config.direct_request_delay, stop_event
                )

    summary.elapsed_seconds = time.perf_counter() - start
    logger.info(
        "Image download process %s in %.2fs (%d saved, %d failed, %d skipped)",
        "cancelled" if summary.cancelled else "complete",
        summary.elapsed_seconds,
        summary.saved,
        summary.failed,
        summary.skipped,
    )
    return summary
