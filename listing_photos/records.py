"""Loading listing rows from CSV files, CSV exports, and GViz JSON exports."""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Union

import requests

from .config import ADDRESS_FIELDS
from .errors import RecordLoadError
from .models import ListingRecord

logger = logging.getLogger("listing_photos")

GVIZ_PREFIX = "google.visualization.Query.setResponse("
GVIZ_PATTERN = re.compile(r"setResponse\((.*)\)\s*;?\s*$", re.DOTALL)
MIN_FILLED_RATIO = 0.5


def parse_csv(text: str) -> List[ListingRecord]:
    """Parse CSV text into records keyed by the trimmed header row."""
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        headers = [h.strip() for h in next(reader)]
    except StopIteration:
        return []
    except csv.Error as exc:
        raise RecordLoadError(f"Malformed CSV header: {exc}") from exc

    records: List[ListingRecord] = []
    try:
        for values in reader:
            if not any(v.strip() for v in values):
                continue
            row: Dict[str, str] = {}
            for idx, header in enumerate(headers):
                row[header] = values[idx].strip() if idx < len(values) else ""
            records.append(ListingRecord(row))
    except csv.Error as exc:
        raise RecordLoadError(f"Malformed CSV on line {reader.line_num}: {exc}") from exc
    return records


def _gviz_cell(cell) -> str:
    if not isinstance(cell, dict):
        return ""
    value = cell.get("f")
    if value is None:
        value = cell.get("v")
    return "" if value is None else str(value).strip()


def parse_gviz(text: str) -> List[ListingRecord]:
    """Parse a Google Visualization JSON(P) response into records."""
    match = GVIZ_PATTERN.search(text.strip())
    payload = match.group(1) if match else text
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise RecordLoadError(f"Malformed GViz response: {exc}") from exc
    if not isinstance(data, dict):
        raise RecordLoadError(
            f"Malformed GViz response: expected an object, got {type(data).__name__}"
        )

    if data.get("status") == "error":
        reasons = ", ".join(
            err.get("detailed_message") or err.get("message") or err.get("reason", "")
            for err in data.get("errors") or []
            if isinstance(err, dict)
        )
        raise RecordLoadError(f"GViz query failed: {reasons or 'unknown error'}")

    table = data.get("table") or {}
    if not isinstance(table, dict):
        raise RecordLoadError("Malformed GViz response: 'table' is not an object")
    headers = [
        str(col.get("label") or col.get("id") or "").strip() if isinstance(col, dict) else ""
        for col in table.get("cols") or []
    ]
    records: List[ListingRecord] = []
    for raw_row in table.get("rows") or []:
        if not isinstance(raw_row, dict):
            continue
        cells = raw_row.get("c")
        if not isinstance(cells, list):
            cells = []
        row = {
            header: _gviz_cell(cells[idx] if idx < len(cells) else None)
            for idx, header in enumerate(headers)
        }
        if any(row.values()):
            records.append(ListingRecord(row))
    return records


def parse_records(text: str) -> List[ListingRecord]:
    if GVIZ_PREFIX in text[:2048]:
        return parse_gviz(text)
    return parse_csv(text)


def load_records(source: Union[str, Path], timeout: float = 20.0) -> List[ListingRecord]:
    """Read listing records from a local file or an http(s) export URL."""
    source_str = str(source)
    if source_str.startswith(("http://", "https://")):
        try:
            resp = requests.get(source_str, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise RecordLoadError(f"Failed to fetch {source_str}: {exc}") from exc
        text = resp.text
    else:
        try:
            text = Path(source_str).read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise RecordLoadError(f"Failed to read {source_str}: {exc}") from exc

    logger.debug("Raw records from %s: %r", source_str, text[:200])
    records = parse_records(text)
    logger.info("Found %d homes in %s", len(records), source_str)
    return records


def filter_viable(records: Iterable[ListingRecord]) -> List[ListingRecord]:
    """Keep the homes the listing page would display.

    A home is kept when its ``Viable?`` value is anything other than blank or
    ``no``, at least half of its cells are filled in, and it has an address.
    """
    kept: List[ListingRecord] = []
    for record in records:
        viability = record.viability
        if viability in ("", "no"):
            continue
        values = list(record.fields.values())
        filled = sum(1 for value in values if value and value.strip())
        if not values or filled / len(values) < MIN_FILLED_RATIO:
            continue
        if not record.get(ADDRESS_FIELDS).strip():
            continue
        if viability == "maybe":
            logger.debug("Keeping 'maybe' home: %s", record.get(ADDRESS_FIELDS))
        kept.append(record)
    return kept
