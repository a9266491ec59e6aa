# run_scraper.py
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from bb_scraper.cache import JsonCacheStore
from bb_scraper.errors import PartialScrapeError, ScrapeError, WriteError
from bb_scraper.export import ExportFormat, ExportOptions, default_destination
from bb_scraper.logging_utils import LEVELS, get_logger, setup_logging
from bb_scraper.models import PageKind, Scope
from bb_scraper.pipeline import (
    load_team_directory,
    make_fetcher,
    refresh_team_names,
    scrape_and_extract,
    write_output,
)
from bb_scraper.settings import TEAM_COUNT, load_settings

logger = get_logger(__name__)


def _team_id(value: str) -> int:
    try:
        team_id = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"team id must be a number, got {value!r}")
    if not 0 <= team_id < TEAM_COUNT:
        raise argparse.ArgumentTypeError(f"team id must be 0..{TEAM_COUNT - 1}, got {team_id}")
    return team_id


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scrape Brutalball rosters, results, teams and injuries into CSV/TSV"
    )
    parser.add_argument(
        "--page",
        choices=[k.value for k in PageKind],
        default=PageKind.PLAYERS.value,
        help="Which page to scrape (default: players)",
    )
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--all", action="store_true", help="All teams (default)")
    scope.add_argument(
        "-t",
        "--team",
        action="append",
        dest="teams",
        type=_team_id,
        help="Team id to scrape (can be used multiple times). Example: -t 7 -t 12",
    )
    parser.add_argument(
        "-o",
        "--out",
        type=str,
        help="Output file, or directory with --per-team. Default: out/<page>/all.<ext>",
    )
    parser.add_argument("--format", choices=[f.value for f in ExportFormat], default="csv")
    parser.add_argument("--headers", action="store_true", help="Write a header row")
    parser.add_argument("--strip-hash", action="store_true", help="Write player numbers without '#'")
    parser.add_argument("--no-match-id", action="store_true", help="Leave out the game results Match id column")
    parser.add_argument("--per-team", action="store_true", help="One file per team inside the output directory")
    parser.add_argument("--refresh", action="store_true", help="Ignore the local cache and fetch live")
    parser.add_argument("--list-teams", action="store_true", help="Print team ids and names, then exit")
    parser.add_argument("--store-dir", type=str, help="Cache directory (default: .store)")
    parser.add_argument("--config", type=str, help="YAML config file (default: bb_scrape.yml)")
    parser.add_argument("--log-level", choices=sorted(LEVELS), type=str.upper, help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings(args.config, store_dir=args.store_dir, log_level=args.log_level)
    setup_logging(level=settings.log_level, log_file=settings.log_file)

    cache = JsonCacheStore(settings.store_dir)
    fetcher = make_fetcher(settings)

    if args.list_teams:
        try:
            if args.refresh:
                teams = refresh_team_names(cache=cache, fetcher=fetcher)
            else:
                teams = load_team_directory(cache=cache, fetcher=fetcher)
        except ScrapeError as e:
            logger.error("Could not load team list: %s", e)
            return 1
        for entry in teams:
            print(f"{entry.id}\t{entry.name}")
        return 0

    kind = PageKind.parse(args.page)
    scope = Scope.subset(args.teams) if args.teams else Scope.all()
    fmt = ExportFormat(args.format)
    options = ExportOptions(
        include_header=args.headers,
        strip_number_hash=args.strip_hash,
        drop_optional_column=args.no_match_id,
        per_team_output=args.per_team,
    )

    logger.info("Scraping %s for teams: %s", kind.value, scope.key)
    teams = load_team_directory(cache=cache, fetcher=fetcher)

    exit_code = 0
    try:
        dataset = scrape_and_extract(
            kind,
            scope,
            use_cache=not args.refresh,
            cache=cache,
            fetcher=fetcher,
            teams=teams,
            settings=settings,
        )
    except PartialScrapeError as e:
        for team_id in e.report.failed:
            logger.error("Team %s (%s) failed: %s", team_id, teams.name_for(team_id), e.report[team_id].error)
        logger.warning("Writing rows for the %d teams that succeeded", len(e.report.succeeded))
        dataset = e.dataset
        exit_code = 1
    except ScrapeError as e:
        logger.error("Scrape failed: %s", e)
        return 1

    if not dataset.records:
        logger.warning("No rows extracted for %s", kind.value)

    destination = args.out or default_destination(
        settings.out_dir, kind, fmt, options.per_team_output and kind.per_team
    )
    try:
        write_output(dataset, fmt, options, destination, teams=teams)
    except WriteError as e:
        logger.error("%s", e)
        return 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
