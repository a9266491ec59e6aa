# bb_scraper package
# Brutalball (dozerverse.com) roster, results and injury extraction

from .utils import (
    fetch_page,
    normalize,
    normalize_entities,
    normalize_ws,
    sanitize_team_filename,
    strip_brackets,
    strip_tags,
)

from .errors import (
    CacheError,
    FetchError,
    PartialScrapeError,
    RowArityMismatch,
    ScrapeError,
    TableNotFound,
    WriteError,
)
from .models import (
    Dataset,
    ExtractResult,
    PageKind,
    Scope,
    ScrapeReport,
    TeamDirectory,
    TeamEntry,
    TeamOutcome,
)
from .roster import parse_roster, split_first_cell, strip_number_hash
from .game_results import parse_game_results
from .teams import parse_team_list
from .injuries import parse_injuries
from .extract import extract_rows
from .cache import CacheStore, JsonCacheStore, MemoryCacheStore
from .export import ExportFormat, ExportOptions, apply_options, render, write
from .pipeline import (
    collect_players,
    refresh_team_names,
    scrape_and_extract,
    write_output,
)

__all__ = [
    # Utils
    "fetch_page",
    "normalize",
    "normalize_entities",
    "normalize_ws",
    "sanitize_team_filename",
    "strip_brackets",
    "strip_tags",
    # Errors
    "CacheError",
    "FetchError",
    "PartialScrapeError",
    "RowArityMismatch",
    "ScrapeError",
    "TableNotFound",
    "WriteError",
    # Models
    "Dataset",
    "ExtractResult",
    "PageKind",
    "Scope",
    "ScrapeReport",
    "TeamDirectory",
    "TeamEntry",
    "TeamOutcome",
    # Extraction
    "parse_roster",
    "split_first_cell",
    "strip_number_hash",
    "parse_game_results",
    "parse_team_list",
    "parse_injuries",
    "extract_rows",
    # Cache
    "CacheStore",
    "JsonCacheStore",
    "MemoryCacheStore",
    # Export
    "ExportFormat",
    "ExportOptions",
    "apply_options",
    "render",
    "write",
    # Pipeline
    "collect_players",
    "refresh_team_names",
    "scrape_and_extract",
    "write_output",
]
