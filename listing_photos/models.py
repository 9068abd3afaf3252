"""Data models used throughout the photo pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import LISTING_URL_FIELDS, VIABLE_FIELDS
from .utils import extract_zpid, find_field, normalize_url


@dataclass
class ListingRecord:
    """A single spreadsheet row describing one home."""

    fields: Dict[str, str]

    def get(self, candidates: Sequence[str]) -> str:
        return find_field(self.fields, candidates)

    @property
    def listing_url(self) -> str:
        return normalize_url(self.get(LISTING_URL_FIELDS))

    @property
    def zpid(self) -> Optional[str]:
        return extract_zpid(self.listing_url)

    @property
    def viability(self) -> str:
        return self.get(VIABLE_FIELDS).strip().lower()


class RecordStatus(str, Enum):
    """Outcome of processing one listing record."""

    SAVED = "saved"
    SKIPPED_NO_KEY = "skipped_no_key"
    SKIPPED_EXISTING = "skipped_existing"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    FILTERED = "filtered"


SKIPPED_STATUSES = frozenset(
    {RecordStatus.SKIPPED_NO_KEY, RecordStatus.SKIPPED_EXISTING, RecordStatus.FILTERED}
)


@dataclass
class RecordResult:
    """What happened to a single record during a batch."""

    zpid: Optional[str]
    status: RecordStatus
    image_url: Optional[str] = None
    output_path: Optional[Path] = None

    @property
    def did_network_work(self) -> bool:
        return self.status not in SKIPPED_STATUSES


@dataclass
class BatchSummary:
    """Totals for a finished (or cancelled) batch run."""

    results: List[RecordResult] = field(default_factory=list)
    used_browser: bool = False
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    def count(self, status: RecordStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @property
    def saved(self) -> int:
        return self.count(RecordStatus.SAVED)

    @property
    def skipped(self) -> int:
        return sum(1 for result in self.results if result.status in SKIPPED_STATUSES)

    @property
    def failed(self) -> int:
        return self.count(RecordStatus.NOT_FOUND) + self.count(RecordStatus.FAILED)

    @property
    def processed(self) -> int:
        return len(self.results) - self.skipped

    @property
    def saved_paths(self) -> List[Path]:
        return [r.output_path for r in self.results if r.output_path is not None]
