# roster.py
from __future__ import annotations

from typing import List, Tuple

from .errors import TableNotFound
from .html_scan import (
    inner_after_open_tag,
    is_data_row,
    next_tag_block_ci,
    slice_between_ci,
    tag_blocks,
    title_season,
    to_lower,
)
from .logging_utils import get_logger
from .models import PLAYER_BASE_HEADERS, ExtractResult
from .utils import letters_only_trim, normalize, normalize_ws, strip_brackets, strip_record_suffix

logger = get_logger(__name__)

ROSTER_TABLE = "<table class=teamroster"
TEAM_NAME_CUTS = (" Team owner", " | ")


# ===================== FIELD SPLITTING =====================

def split_first_cell(cell: str) -> Tuple[str, str, str]:
    """
    'Grug #27 Common Orc' -> ('Grug', '#27', 'Common Orc').

    Splits at the first '#'. The number keeps its hash and runs to the next
    whitespace; the race is the rest. Without a '#' the whole cell is the name.
    """
    hidx = cell.find("#")
    if hidx == -1:
        return cell.strip(), "", ""

    name = normalize_ws(cell[:hidx])
    parts = cell[hidx:].strip().split(None, 1)
    number = parts[0]
    race = normalize_ws(parts[1]) if len(parts) > 1 else ""
    return name, number, race


def strip_number_hash(number: str) -> str:
    """'#27' -> '27'. Display-time only; stored records keep the hash."""
    return number[1:] if number.startswith("#") else number


# ===================== TABLE PIECES =====================

def extract_team_name(table: str, team_id: int) -> str:
    """
    Team name from the roster table's first cell, e.g.
    'Failurewood Hills (6 - 0 - 2) Team owner Foo' -> 'Failurewood Hills'.
    """
    tr = next_tag_block_ci(table, "<tr", "</tr>")
    text = ""
    if tr is not None:
        tr_block = table[tr[0]:tr[1]]
        td = next_tag_block_ci(tr_block, "<td", "</td>")
        if td is not None:
            text = normalize(inner_after_open_tag(tr_block[td[0]:td[1]]))

    cut = len(text)
    for marker in TEAM_NAME_CUTS:
        idx = text.find(marker)
        if idx != -1:
            cut = min(cut, idx)
    name = letters_only_trim(strip_record_suffix(text[:cut]))
    if not name:
        logger.debug("Team %s: no team name in roster table, using fallback", team_id)
        return f"Team {team_id}"
    return name


def read_site_headers(table: str) -> List[str]:
    """
    Consecutive <th> cells starting at the first one. The site emits them
    without a wrapping <tr>, so scanning stops at the first non-<th> tag.
    """
    headers: List[str] = []
    pos = 0
    while True:
        found = next_tag_block_ci(table, "<th", "</th>", pos)
        if found is None:
            break
        start, end = found
        headers.append(normalize(inner_after_open_tag(table[start:end])))
        pos = end
        if not to_lower(table[pos:].lstrip()).startswith("<th"):
            break
    return headers


def _row_cells(tr_block: str) -> List[str]:
    return [normalize(inner_after_open_tag(td)) for td in tag_blocks(tr_block, "<td", "</td>")]


# ===================== ROSTER =====================

def parse_roster(html: str, team_id: int) -> ExtractResult:
    """
    Player rows from team.php?i=<team_id>.

    Output columns: Name, #, Race, Team, then the site's columns after its
    fused name column. Rows whose cell count differs from the site header
    count (or the first row's count when the table has no headers) are
    dropped with a warning.
    """
    table = slice_between_ci(html, ROSTER_TABLE, "</table>")
    if table is None:
        raise TableNotFound(
            f"teamroster table not found for team {team_id}",
            context={"team_id": team_id, "page": "team.php"},
        )

    team_name = extract_team_name(table, team_id)
    site_headers = read_site_headers(table)

    headers: Tuple[str, ...] = ()
    if site_headers:
        first = site_headers[0]
        if "name" not in first.lower():
            logger.debug("Team %s: first roster header %r replaced by Name/#/Race", team_id, first)
        headers = PLAYER_BASE_HEADERS + tuple(site_headers[1:])

    expected = len(site_headers) or None
    records = []
    for idx, tr in enumerate(tag_blocks(table, "<tr", "</tr>")):
        if not is_data_row(tr):
            continue
        cells = _row_cells(tr)
        if not cells:
            continue
        if expected is None:
            expected = len(cells)
        if len(cells) != expected:
            logger.warning(
                "Team %s: dropping roster row %d with %d cells (expected %d)",
                team_id, idx, len(cells), expected,
            )
            continue

        name, number, race = split_first_cell(strip_brackets(cells[0]))
        records.append((name, number, race, team_name, *cells[1:]))

    logger.debug("Team %s (%s): %d player rows", team_id, team_name, len(records))
    return ExtractResult(
        records=tuple(records),
        headers=headers,
        team_name=team_name,
        season=title_season(html),
    )
