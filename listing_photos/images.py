"""Image downloading, validation, and resizing utilities."""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

import requests
from filetype import guess
from PIL import Image, ImageOps, UnidentifiedImageError

from .config import FETCH_USER_AGENT, LISTING_ROOT, DownloadConfig

logger = logging.getLogger("listing_photos")

MAX_IMAGE_BYTES = 25 * 1024 * 1024
MIN_IMAGE_BYTES = 512
FETCH_HEADERS = {
    "User-Agent": FETCH_USER_AGENT,
    "Referer": LISTING_ROOT,
    "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
}

Fetcher = Callable[[str], Optional[bytes]]


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def fetch_image(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = 20.0,
) -> Optional[bytes]:
    """Download raw image bytes with browser-like headers.

    Returns None for network errors, non-2xx responses, and payloads that are
    not images. There is no retry here; callers move on to their next
    candidate URL instead.
    """
    http = session or requests
    logger.info("Downloading image from: %s", url)
    try:
        resp = http.get(url, headers=FETCH_HEADERS, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Failed to fetch image %s: %s", url, exc)
        return None

    data = resp.content
    if len(data) < MIN_IMAGE_BYTES:
        logger.warning("Skipping %s: response too small", url)
        return None
    if len(data) > MAX_IMAGE_BYTES:
        logger.warning("Skipping %s: image larger than %s bytes", url, MAX_IMAGE_BYTES)
        return None
    if not detect_image_format(data):
        logger.warning(
            "Skipping %s: not an image (Content-Type=%s)",
            url,
            resp.headers.get("Content-Type", ""),
        )
        return None
    return data


def transcode_image(data: bytes, width: int, height: int, quality: int) -> bytes:
    """Crop-to-fill ``data`` to exactly ``width`` x ``height`` and encode as JPEG."""
    with Image.open(io.BytesIO(data)) as raw_image:
        image = ImageOps.exif_transpose(raw_image)
        image = image.convert("RGB")
        image = ImageOps.fit(
            image,
            (width, height),
            method=Image.Resampling.LANCZOS,
            centering=(0.5, 0.5),
        )
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def save_listing_image(data: bytes, destination: Path, config: DownloadConfig) -> Path:
    """Resize ``data`` and write it to ``destination`` via a temporary file.

    The final path only ever appears fully written, so a later run never
    mistakes a truncated file for a finished download.
    """
    encoded = transcode_image(data, config.width, config.height, config.quality)
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.stem}-", suffix=".part", dir=destination.parent
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(encoded)
        os.replace(tmp_name, destination)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return destination


def download_and_save(
    url: str,
    destination: Path,
    fetcher: Fetcher,
    config: DownloadConfig,
) -> bool:
    """Fetch ``url`` and store it at ``destination``; returns True on success."""
    data = fetcher(url)
    if data is None:
        return False
    try:
        save_listing_image(data, destination, config)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        logger.warning("Failed to process image %s: %s", url, exc)
        return False
    logger.info("Saved %s", destination)
    return True
