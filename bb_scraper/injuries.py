# injuries.py
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import TableNotFound
from .html_scan import leading_digits, title_season, to_lower
from .logging_utils import get_logger
from .models import INJURY_HEADERS, ExtractResult, Record, TeamDirectory
from .utils import normalize

logger = get_logger(__name__)

# ===================== CONSTANTS =====================

EVENT_SEPARATOR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
DROPS_RE = re.compile(r"Drops from\s*(\d+)\D*?\bto\s*(\d+)")
DIGITS_RE = re.compile(r"\d+")
WEEK_RE = re.compile(r"W(\d+)")
SEASON_RE = re.compile(r"season (\d+)", re.IGNORECASE)

BOUNTY = "BOUNTY COLLECTED"
KILLED = "KILLED"


def split_team_prefix(text: str, team_names: Sequence[str]) -> Optional[Tuple[str, str]]:
    """
    Split 'Red Star Pathfinders Grug Mauler' into (team, rest) using the
    longest known team name that prefixes `text`.
    """
    best = ""
    for name in team_names:
        if name and text.startswith(name) and len(name) > len(best):
            best = name
    if not best:
        return None
    return best, text[len(best):].strip()


def _split_team_and_player(segment: str, team_names: Sequence[str]) -> Optional[Tuple[str, str]]:
    found = split_team_prefix(segment, team_names)
    if found is not None:
        return found
    # Unknown team: assume a two-word player name at the end
    parts = segment.split()
    if len(parts) < 2:
        return None
    return " ".join(parts[:-2]), " ".join(parts[-2:])


def parse_event(chunk: str, season: str, team_names: Sequence[str]) -> Optional[Record]:
    """
    One injury log line, e.g.

        W7 Red Star Pathfinders Grug DUR 3 Smashed Hand by Vuvu Boys Krak BRU 12 Drops from 71 to 68

    becomes the 12-column injury record. Returns None when the week, the DUR
    value or one of the DUR / by / BRU keywords is missing.
    """
    text = normalize(chunk)
    if " DUR " not in text or " BRU " not in text:
        return None

    wm = WEEK_RE.search(text)
    if wm is None:
        return None
    week = wm.group(1)
    rest = text[wm.end():].lstrip()

    # Victim team + victim, up to DUR
    dur_pos = rest.find(" DUR ")
    if dur_pos == -1:
        return None
    victim = _split_team_and_player(rest[:dur_pos].rstrip(), team_names)
    if victim is None:
        return None
    victim_team, victim_name = victim

    # KILLED lines carry the SR inside the victim segment
    sr_from_name = ""
    sr_idx = victim_name.rfind(" SR ")
    if sr_idx != -1:
        digits = leading_digits(victim_name[sr_idx + 4:].strip())
        if digits:
            sr_from_name = digits
            victim_name = victim_name[:sr_idx].strip()

    rest = rest[dur_pos + len(" DUR "):]
    dur = leading_digits(rest)
    if not dur:
        return None
    after_dur = rest[len(dur):].lstrip()

    by_pos = to_lower(after_dur).find(" by ")
    if by_pos == -1:
        return None
    inj_type = after_dur[:by_pos].strip()

    rest = after_dur[by_pos + len(" by "):]
    bru_pos = rest.find(" BRU ")
    if bru_pos == -1:
        return None
    offender_seg = rest[:bru_pos].rstrip()
    if to_lower(offender_seg).startswith("by "):
        offender_seg = offender_seg[3:]
    offender = split_team_prefix(offender_seg, team_names)
    if offender is None:
        parts = offender_seg.split()
        if len(parts) < 2:
            offender = (offender_seg, "")
        else:
            offender = (" ".join(parts[:-2]), " ".join(parts[-2:]))
    off_team, off_name = offender

    rest = rest[bru_pos + len(" BRU "):]
    bru = leading_digits(rest)
    after_bru = rest[len(bru):].lstrip()

    sr0, sr1 = "", ""
    from_pos = after_bru.find("Drops from ")
    if from_pos != -1:
        m = DROPS_RE.search(after_bru, from_pos)
        if m:
            sr0, sr1 = m.group(1), m.group(2)
        else:
            nums = DIGITS_RE.findall(after_bru[from_pos:])
            if len(nums) >= 2:
                sr0, sr1 = nums[0], nums[1]
            elif nums:
                sr0 = nums[0]
    if not sr1 and "KILL" in inj_type.upper():
        inj_type = KILLED
    if not sr0:
        sr0 = sr_from_name

    bounty = BOUNTY if BOUNTY in text.upper() else ""

    return (
        season, week, victim_team, victim_name, dur, sr0, sr1,
        inj_type, off_team, off_name, bru, bounty,
    )


def document_season(html: str) -> str:
    season = title_season(html)
    if season:
        return season
    m = SEASON_RE.search(html)
    return m.group(1) if m else ""


def event_chunks(html: str) -> Iterable[str]:
    return (chunk for chunk in EVENT_SEPARATOR_RE.split(html) if " DUR " in chunk)


def parse_injuries(
    html: str,
    teams: Optional[TeamDirectory] = None,
    season: str = "",
) -> ExtractResult:
    """
    Injury events from injury.php. The page is a <br>-separated log; team
    names are matched against `teams` (longest prefix wins). Lines that do
    not parse are skipped. `season` is used when the page does not state one.
    """
    chunks = list(event_chunks(html))
    if not chunks and "injur" not in to_lower(html):
        raise TableNotFound("injury log not found on injury.php", context={"page": "injury.php"})

    season = document_season(html) or season
    team_names: List[str] = teams.names() if teams is not None else []

    records = []
    for i, chunk in enumerate(chunks):
        rec = parse_event(chunk, season, team_names)
        if rec is None:
            logger.debug("Injuries: could not parse chunk #%d: %.120s", i, chunk.strip())
            continue
        records.append(rec)

    logger.debug("Injuries: parsed %d of %d event lines", len(records), len(chunks))
    return ExtractResult(records=tuple(records), headers=INJURY_HEADERS, season=season)
