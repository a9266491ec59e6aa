# extract.py
from __future__ import annotations

from typing import Optional

from .game_results import parse_game_results
from .injuries import parse_injuries
from .logging_utils import get_logger
from .models import ExtractResult, PageKind, Scope, TeamDirectory
from .roster import parse_roster
from .teams import parse_team_list

logger = get_logger(__name__)


def extract_rows(
    html: str,
    page_kind: PageKind | str,
    scope: Optional[Scope] = None,
    *,
    teams: Optional[TeamDirectory] = None,
    season: str = "",
) -> ExtractResult:
    """
    Run the extractor for `page_kind` over one fetched page.

    Players pages are per team, so `scope` must name a single team. The
    other kinds are league-wide pages and ignore `scope`. Raises TableNotFound
    when the page lacks the expected markup; nothing partial is returned.
    """
    kind = PageKind.parse(page_kind)
    logger.debug("Extracting %s rows from %d chars", kind.value, len(html))

    if kind is PageKind.PLAYERS:
        if scope is None or not scope.is_single:
            raise ValueError("players extraction needs a single-team scope")
        return parse_roster(html, scope.ids()[0])
    if kind is PageKind.GAME_RESULTS:
        return parse_game_results(html)
    if kind is PageKind.TEAMS:
        return parse_team_list(html)
    return parse_injuries(html, teams=teams, season=season)
