# pipeline.py
"""
Fetch -> extract -> cache -> write, as used by the CLI.

Players pages are fetched one team at a time over a small thread pool. Each
team ends up as its own TeamOutcome in a ScrapeReport, so a run with one bad
team still reports every other team's result individually.
"""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import requests

from .cache import CacheStore
from .errors import CacheError, FetchError, PartialScrapeError, ScrapeError
from .export import ExportFormat, ExportOptions, write
from .extract import extract_rows
from .logging_utils import get_logger
from .models import Dataset, PageKind, Scope, ScrapeReport, TeamDirectory, TeamOutcome
from .roster import parse_roster
from .game_results import fill_season
from .html_scan import title_season
from .settings import INJURY_PAGE, SEASON_FALLBACK_PAGES, SEASON_PAGE, TEAM_PAGE, TEAMS_PAGE, Settings
from .teams import parse_team_list
from .utils import fetch_page, letters_only_trim

logger = get_logger(__name__)

Fetcher = Callable[[str], str]

LEAGUE_PAGES = {
    PageKind.GAME_RESULTS: SEASON_PAGE,
    PageKind.TEAMS: TEAMS_PAGE,
    PageKind.INJURIES: INJURY_PAGE,
}


def make_fetcher(settings: Optional[Settings] = None, session: Optional[requests.Session] = None) -> Fetcher:
    return partial(fetch_page, settings=settings or Settings(), session=session)


def polite_pause(team_id: int, settings: Settings) -> None:
    jitter = team_id % settings.jitter_ms if settings.jitter_ms > 0 else 0
    delay_ms = settings.request_pause_ms + jitter
    if delay_ms > 0:
        time.sleep(delay_ms / 1000.0)


def _save_quietly(cache: Optional[CacheStore], dataset: Dataset) -> None:
    if cache is None:
        return
    try:
        cache.save(dataset)
    except CacheError as e:
        logger.error("Cache save failed for %s/%s: %s", *dataset.key, e)


# ===================== PLAYERS =====================

def fetch_team_players(team_id: int, fetcher: Fetcher, settings: Optional[Settings] = None) -> TeamOutcome:
    """Fetch and extract one roster page; every scrape failure becomes a failed outcome."""
    settings = settings or Settings()
    polite_pause(team_id, settings)
    try:
        html = fetcher(TEAM_PAGE.format(team_id=team_id))
        result = parse_roster(html, team_id)
        dataset = result.to_dataset(PageKind.PLAYERS, Scope.team(team_id))
    except ScrapeError as e:
        logger.warning("Team %s failed: %s", team_id, e)
        return TeamOutcome(team_id=team_id, ok=False, error=str(e))
    except Exception as e:
        logger.exception("Team %s failed unexpectedly", team_id)
        return TeamOutcome(team_id=team_id, ok=False, error=f"{type(e).__name__}: {e}")

    logger.info("Team %s (%s): %d players", team_id, result.team_name, len(dataset))
    return TeamOutcome(team_id=team_id, ok=True, dataset=dataset)


def collect_players(
    team_ids: Iterable[int],
    *,
    fetcher: Fetcher,
    settings: Optional[Settings] = None,
    cache: Optional[CacheStore] = None,
) -> ScrapeReport:
    """
    Fetch every requested team concurrently and return one outcome per team.
    Successful teams are also cached under their own per-team key.
    """
    settings = settings or Settings()
    ids = sorted(set(team_ids))
    report = ScrapeReport()
    if not ids:
        return report

    workers = max(1, min(settings.workers, len(ids)))
    logger.info("Fetching %d team rosters with %d workers", len(ids), workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(fetch_team_players, i, fetcher, settings): i for i in ids}
        for fut in as_completed(futures):
            outcome = fut.result()
            report.add(outcome)
            if outcome.ok and outcome.dataset is not None:
                _save_quietly(cache, outcome.dataset)

    logger.info(
        "Rosters: %d ok, %d failed%s",
        len(report.succeeded),
        len(report.failed),
        f" (teams {report.failed})" if report.failed else "",
    )
    return report


def merge_players(report: ScrapeReport, scope: Scope) -> Dataset:
    """
    Concatenate successful team datasets in ascending team id order. A team
    whose column count differs from the first team's is skipped.
    """
    headers: tuple = ()
    season = ""
    records = []
    arity = None
    for ds in report.datasets():
        if not ds.records and not ds.headers:
            continue
        if arity is None:
            arity = ds.arity
        elif ds.arity is not None and ds.arity != arity:
            logger.warning(
                "Team %s has %d columns, expected %d; leaving it out of the merged table",
                ds.scope.key, ds.arity, arity,
            )
            continue
        headers = headers or ds.headers
        season = season or ds.season
        records.extend(ds.records)
    return Dataset(
        page_kind=PageKind.PLAYERS,
        scope=scope,
        season=season,
        headers=headers,
        records=tuple(records),
    )


def _scrape_players(scope: Scope, *, cache: Optional[CacheStore], fetcher: Fetcher, settings: Settings) -> Dataset:
    report = collect_players(scope.ids(), fetcher=fetcher, settings=settings, cache=cache)
    if not report.any_ok:
        raise FetchError(
            f"All {len(report)} team fetches failed",
            context={"failed": report.failed},
        )

    dataset = merge_players(report, scope)
    if not report.all_ok:
        raise PartialScrapeError(
            f"{len(report.failed)} of {len(report)} teams failed: {report.failed}",
            report=report,
            dataset=dataset,
        )

    if not scope.is_single:
        _save_quietly(cache, dataset)
    if cache is not None and not scope.is_all:
        # Fold the fresh teams into the cached league-wide table
        league = cache.load(PageKind.PLAYERS, Scope.all())
        if league is not None:
            _save_quietly(cache, league.replace_teams(dataset.with_records(dataset.records, scope=Scope.all())))
    return dataset


# ===================== LEAGUE PAGES =====================

def _filter_to_scope(dataset: Dataset, scope: Scope, teams: TeamDirectory) -> Dataset:
    if scope.is_all:
        return dataset
    wanted = set()
    for team_id in scope.ids():
        name = teams.name_for(team_id)
        wanted.update({name, letters_only_trim(name)})
    cols = dataset.page_kind.team_columns
    if not cols:
        return dataset
    rows = [rec for rec in dataset.records if any(rec[c] in wanted for c in cols)]
    return dataset.with_records(rows, scope=scope)


def _season_hint(cache: Optional[CacheStore]) -> str:
    if cache is None:
        return ""
    games = cache.load(PageKind.GAME_RESULTS, Scope.all())
    return games.season if games is not None else ""


def season_from_stats_pages(fetcher: Fetcher) -> str:
    """Season from the <title> of the stats pages, tried in order; "" when none names it."""
    for path in SEASON_FALLBACK_PAGES:
        try:
            season = title_season(fetcher(path))
        except ScrapeError as e:
            logger.debug("No season from %s: %s", path, e)
            continue
        if season:
            return season
    return ""


def load_team_directory(
    *,
    cache: Optional[CacheStore],
    fetcher: Optional[Fetcher] = None,
) -> TeamDirectory:
    """
    Cached team list, else a live refresh, else the 'Team 0'..'Team 31'
    fallback.
    """
    if cache is not None:
        teams = cache.load_teams()
        if teams is not None:
            return teams
    if fetcher is not None:
        try:
            return refresh_team_names(cache=cache, fetcher=fetcher)
        except ScrapeError as e:
            logger.warning("Team list unavailable (%s); using generic team names", e)
    return TeamDirectory.fallback()


def _fetch_team_list(cache: Optional[CacheStore], fetcher: Fetcher) -> Dataset:
    html = fetcher(TEAMS_PAGE)
    dataset = parse_team_list(html).to_dataset(PageKind.TEAMS, Scope.all())
    _save_quietly(cache, dataset)
    logger.info("Team list refreshed: %d teams", len(dataset))
    return dataset


def refresh_team_names(*, cache: Optional[CacheStore], fetcher: Fetcher) -> TeamDirectory:
    """Fetch index.php, rebuild the team directory and store it."""
    return TeamDirectory.from_dataset(_fetch_team_list(cache, fetcher))


def scrape_and_extract(
    page_kind: PageKind | str,
    scope: Optional[Scope] = None,
    use_cache: bool = True,
    *,
    cache: Optional[CacheStore] = None,
    fetcher: Optional[Fetcher] = None,
    teams: Optional[TeamDirectory] = None,
    settings: Optional[Settings] = None,
) -> Dataset:
    """
    Dataset for (page_kind, scope), from the cache when allowed and present,
    otherwise fetched live and then cached.

    Raises FetchError when nothing could be fetched, PartialScrapeError when
    some players teams failed (it carries the per-team report and the rows
    that did arrive) and TableNotFound when a page lacks its table.
    """
    kind = PageKind.parse(page_kind)
    scope = scope or Scope.all()
    settings = settings or Settings()
    fetcher = fetcher or make_fetcher(settings)

    # League-wide pages are cached whole and narrowed afterwards
    cache_scope = scope if kind is PageKind.PLAYERS else Scope.all()

    if use_cache and cache is not None:
        cached = cache.load(kind, cache_scope)
        if cached is not None:
            if kind is PageKind.PLAYERS:
                return cached
            directory = teams or load_team_directory(cache=cache)
            return _filter_to_scope(cached, scope, directory)

    if kind is PageKind.PLAYERS:
        return _scrape_players(scope, cache=cache, fetcher=fetcher, settings=settings)

    if kind is PageKind.TEAMS:
        return _fetch_team_list(cache, fetcher)

    if teams is None:
        teams = load_team_directory(cache=cache, fetcher=fetcher)

    html = fetcher(LEAGUE_PAGES[kind])
    result = extract_rows(html, kind, Scope.all(), teams=teams, season=_season_hint(cache))
    if kind is PageKind.GAME_RESULTS and not result.season:
        result = fill_season(result, season_from_stats_pages(fetcher))
    dataset = result.to_dataset(kind, Scope.all())
    if cache is not None:
        cached = cache.load(kind, Scope.all())
        if cached is not None and cache.is_stale(cached, dataset.season):
            logger.info("Season changed from %s to %s for %s", cached.season, dataset.season, kind.value)
    _save_quietly(cache, dataset)
    return _filter_to_scope(dataset, scope, teams)


def write_output(
    dataset: Dataset,
    fmt: ExportFormat | str = ExportFormat.CSV,
    options: Optional[ExportOptions] = None,
    destination: Path | str | None = None,
    *,
    teams: Optional[TeamDirectory] = None,
) -> List[Path]:
    """Write a dataset to a file, or to one file per team inside a directory."""
    return write(dataset, ExportFormat(fmt), options or ExportOptions(), destination, teams=teams)
