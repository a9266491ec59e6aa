# game_results.py
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

from .errors import TableNotFound
from .html_scan import (
    attr_value,
    digits_after,
    first_digit_run,
    has_class,
    inner_after_open_tag,
    is_data_row,
    next_tag_block_ci,
    tag_blocks,
    title_season,
    to_lower,
)
from .logging_utils import get_logger
from .models import GAME_RESULT_HEADERS, ExtractResult
from .utils import letters_only_trim, normalize

logger = get_logger(__name__)

HOME_CLASS = "basicaway"
AWAY_CLASS = "basichome"
MATCH_LINK = "game.php?i="


def week_number(table: str) -> Optional[str]:
    """
    'N' from the table's first conference cell ('WEEK N'), else None.
    Only the first conference cell is considered.
    """
    for td in tag_blocks(table, "<td", "</td>"):
        if not has_class(td, "conference"):
            continue
        text = normalize(inner_after_open_tag(td))
        idx = to_lower(text).find("week")
        if idx == -1:
            return None
        return first_digit_run(text[idx + len("week"):]) or None
    return None


def extract_side(td: str) -> Tuple[str, str]:
    """(team, score) for one side cell. Score is '' for games not yet played."""
    team = ""
    a = next_tag_block_ci(td, "<a", "</a>")
    if a is not None:
        team = letters_only_trim(normalize(inner_after_open_tag(td[a[0]:a[1]])))

    score = ""
    strong = next_tag_block_ci(td, "<strong", "</strong>")
    if strong is not None:
        text = normalize(inner_after_open_tag(td[strong[0]:strong[1]]))
        score = "".join(ch for ch in text if ch.isascii() and ch.isdigit())
    return team, score


def extract_match_id(td: str) -> str:
    a = next_tag_block_ci(td, "<a", ">")
    if a is None:
        return ""
    href = attr_value(td[a[0]:a[1]], "href") or ""
    return digits_after(href, MATCH_LINK)


def _pick_sides(tds: List[str]) -> Tuple[str, str]:
    home = next((td for td in tds if has_class(td, HOME_CLASS)), None)
    away = next((td for td in tds if has_class(td, AWAY_CLASS)), None)
    if home is not None and away is not None:
        return home, away
    # Older layout without side classes: left cell is away, third cell is home
    return tds[2], tds[0]


def fill_season(result: ExtractResult, season: str) -> ExtractResult:
    """Stamp `season` into the S column of a result whose page did not name one."""
    if not season:
        return result
    records = tuple((season,) + tuple(rec[1:]) for rec in result.records)
    return replace(result, records=records, season=season)


def parse_game_results(html: str) -> ExtractResult:
    """
    Season schedule/results from season.php. Each week is its own <table>
    headed by a 'WEEK N' conference cell; future games come out with blank
    scores and no match id.
    """
    season = title_season(html)
    records = []
    week_tables = 0

    for table in tag_blocks(html, "<table", "</table>"):
        week = week_number(table)
        if week is None:
            continue
        week_tables += 1

        for idx, tr in enumerate(tag_blocks(table, "<tr", "</tr>")):
            if not is_data_row(tr):
                continue
            tds = list(tag_blocks(tr, "<td", "</td>"))
            if len(tds) < 3:
                logger.warning(
                    "Week %s: dropping game row %d with %d cells (need 3)",
                    week, idx, len(tds),
                )
                continue

            home_td, away_td = _pick_sides(tds)
            home_team, home_score = extract_side(home_td)
            away_team, away_score = extract_side(away_td)
            records.append((
                season,
                week,
                home_team,
                home_score,
                away_score,
                away_team,
                extract_match_id(tds[-1]),
            ))

    if not week_tables:
        raise TableNotFound("no WEEK tables found on season.php", context={"page": "season.php"})

    logger.debug("Season %s: %d game rows in %d weeks", season or "?", len(records), week_tables)
    return ExtractResult(records=tuple(records), headers=GAME_RESULT_HEADERS, season=season)
