# teams.py
from __future__ import annotations

from typing import List, Tuple

from .errors import TableNotFound
from .html_scan import (
    attr_value,
    digits_after,
    has_class,
    inner_after_open_tag,
    next_tag_block_ci,
    tag_blocks,
    title_season,
)
from .logging_utils import get_logger
from .models import TEAM_HEADERS, ExtractResult, TeamDirectory
from .utils import normalize

logger = get_logger(__name__)

TEAM_LINK = "team.php?i="


def _team_link(block: str) -> Tuple[int, str] | None:
    """(id, name) for the first <a href="team.php?i=ID">NAME</a> in `block`."""
    a = next_tag_block_ci(block, "<a", "</a>")
    if a is None:
        return None
    anchor = block[a[0]:a[1]]
    digits = digits_after(attr_value(anchor, "href") or "", TEAM_LINK)
    name = normalize(inner_after_open_tag(anchor))
    if not digits or not name:
        return None
    return int(digits), name


def teams_from_league_table(html: str) -> List[Tuple[int, str]]:
    """Full team names from the namecheck cells of the first table."""
    found = next_tag_block_ci(html, "<table", "</table>")
    if found is None:
        return []
    table = html[found[0]:found[1]]
    out = []
    for td in tag_blocks(table, "<td", "</td>"):
        if not has_class(td, "namecheck"):
            continue
        link = _team_link(td)
        if link is not None:
            out.append(link)
    return out


def teams_from_mega_menu(html: str) -> List[Tuple[int, str]]:
    """Short team names from the navigation menu (<ul class="mega-links">)."""
    out = []
    for ul in tag_blocks(html, "<ul", "</ul>"):
        if not has_class(ul, "mega-links"):
            continue
        for a in tag_blocks(ul, "<a", "</a>"):
            link = _team_link(a)
            if link is not None:
                out.append(link)
    return out


def parse_team_list(html: str) -> ExtractResult:
    """
    Team id/name pairs from index.php, sorted by id, one row per id.
    The league table is preferred; the mega menu is the fallback.
    """
    pairs = teams_from_league_table(html)
    source = "league table"
    if not pairs:
        pairs = teams_from_mega_menu(html)
        source = "mega menu"
    if not pairs:
        raise TableNotFound("no team links found on index.php", context={"page": "index.php"})

    directory = TeamDirectory.from_pairs(pairs)
    logger.debug("Teams: %d unique teams from %s", len(directory), source)
    return ExtractResult(
        records=tuple((str(e.id), e.name) for e in directory),
        headers=TEAM_HEADERS,
        season=title_season(html),
    )
