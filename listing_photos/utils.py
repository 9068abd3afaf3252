"""Utility helpers for listing URLs and spreadsheet headers."""

from __future__ import annotations

import re
from typing import Mapping, Optional, Sequence

from .config import LISTING_HOST

ZPID_PATTERN = re.compile(r"/(\d+)_zpid")


def extract_zpid(listing_url: object) -> Optional[str]:
    """Return the zpid embedded in a Zillow listing URL, or None."""
    if not isinstance(listing_url, str) or LISTING_HOST not in listing_url:
        return None
    match = ZPID_PATTERN.search(listing_url)
    return match.group(1) if match else None


def normalize_url(url: Optional[str]) -> str:
    if not url:
        return ""
    url = url.strip()
    if not url or url.startswith(("http://", "https://")):
        return url
    return "https://" + url


def find_field(row: Mapping[str, str], candidates: Sequence[str]) -> str:
    """Look up the first candidate header present in ``row``, ignoring case.

    Candidates are tried in order, so earlier aliases win when a sheet carries
    several of them. Returns an empty string when none match.
    """
    normalized = {}
    for key in row:
        if key:
            normalized.setdefault(key.strip().lower(), key)
    for candidate in candidates:
        key = normalized.get(candidate.strip().lower())
        if key is not None:
            return row[key] or ""
    return ""
