# errors.py
"""Error taxonomy for fetching, extracting, caching and exporting."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ScrapeError(Exception):
    """Base class for every error the scraper surfaces to callers."""

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class FetchError(ScrapeError):
    """Transport failure or non-200 status for one page."""


class TableNotFound(ScrapeError):
    """The page-kind marker (e.g. the teamroster table) is missing."""


class RowArityMismatch(ScrapeError):
    """A record does not have the field count its dataset expects."""


class CacheError(ScrapeError):
    """A cache entry could not be written."""


class WriteError(ScrapeError):
    """An export destination could not be written."""


class PartialScrapeError(ScrapeError):
    """Some teams in a multi-team run failed; `report` holds every outcome."""

    def __init__(self, message: str, *, report: Any, dataset: Any = None):
        super().__init__(message, context={"failed": sorted(report.failed)})
        self.report = report
        self.dataset = dataset
