"""Command-line entry point for the listing photo downloader."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Sequence

from .config import DEFAULT_INPUT, DEFAULT_OUTPUT_DIR, DownloadConfig
from .downloader import run_batch
from .errors import RecordLoadError
from .models import BatchSummary, ListingRecord
from .records import load_records

logger = logging.getLogger("listing_photos.cli")

EXIT_LOAD_FAILED = 1
EXIT_CANCELLED = 130
MAX_JPEG_QUALITY = 95


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def _jpeg_quality(value: str) -> int:
    number = int(value)
    if not 1 <= number <= MAX_JPEG_QUALITY:
        raise argparse.ArgumentTypeError(
            f"must be between 1 and {MAX_JPEG_QUALITY}, got {value}"
        )
    return number


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Download a representative photo for every Zillow listing in the homes "
            "spreadsheet and store it as <zpid>.jpg."
        ),
    )
    parser.add_argument(
        "--input",
        default=DEFAULT_INPUT,
        help="CSV file, published CSV URL, or Google Visualization JSON URL",
    )
    parser.add_argument(
        "--output",
        default=DEFAULT_OUTPUT_DIR,
        type=Path,
        help="Directory where <zpid>.jpg files are written",
    )
    parser.add_argument("--width", type=_positive_int, default=768, help="Output width in pixels")
    parser.add_argument("--height", type=_positive_int, default=576, help="Output height in pixels")
    parser.add_argument(
        "--quality",
        type=_jpeg_quality,
        default=85,
        help="JPEG quality for stored images (1-95)",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=2.0,
        help="Seconds to wait between listings when using the browser",
    )
    parser.add_argument(
        "--direct-delay",
        type=float,
        default=0.5,
        help="Seconds to wait between listings when guessing image URLs",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Navigation timeout in seconds",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=3.0,
        help="Seconds to let the listing page render before reading it",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Skip the browser and only try direct image URLs",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window instead of running headless",
    )
    parser.add_argument(
        "--viable-only",
        action="store_true",
        help="Only fetch photos for homes marked viable in the sheet",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    verbosity.add_argument("--quiet", action="store_true", help="Only log errors")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> DownloadConfig:
    return DownloadConfig(
        output_dir=Path(args.output).resolve(),
        width=args.width,
        height=args.height,
        quality=args.quality,
        request_delay=args.delay,
        direct_request_delay=args.direct_delay,
        navigation_timeout=args.timeout,
        settle_delay=args.wait,
        use_browser=not args.no_browser,
        headless=not args.headful,
        viable_only=args.viable_only,
    )


async def _run(records: List[ListingRecord], config: DownloadConfig) -> BatchSummary:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; Ctrl+C falls back to KeyboardInterrupt.
            pass
    try:
        return await run_batch(records, config, stop_event=stop_event)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    config = build_config(args)
    try:
        records = load_records(args.input, timeout=config.request_timeout)
    except RecordLoadError as exc:
        logger.error("%s", exc)
        return EXIT_LOAD_FAILED

    logger.info("Starting image download process for %d homes", len(records))
    try:
        summary = asyncio.run(_run(records, config))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_CANCELLED

    if args.verbose:
        logger.debug(
            "Processed %d of %d homes (browser=%s)",
            summary.processed,
            len(records),
            "yes" if summary.used_browser else "no",
        )
        for path in summary.saved_paths:
            logger.debug("Saved %s", path)
    return EXIT_CANCELLED if summary.cancelled else 0


if __name__ == "__main__":
    sys.exit(main())
