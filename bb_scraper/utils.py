# utils.py
from __future__ import annotations

import re
from typing import Optional

import requests

from .errors import FetchError
from .logging_utils import get_logger
from .settings import Settings

logger = get_logger(__name__)

# '<' opens a tag that runs to the next '>' (or end of input); a stray '>' is dropped too
TAG_RE = re.compile(r"<[^>]*>?|>")
BRACKET_RE = re.compile(r"\[[^\]]*\]?|\]")

ENTITIES = (("&nbsp;", " "), ("&amp;", "&"))


# ===================== TEXT NORMALIZATION =====================

def normalize_ws(text: str) -> str:
    return " ".join(text.split())


def strip_tags(text: str) -> str:
    return TAG_RE.sub("", text)


def normalize_entities(text: str) -> str:
    """
    Decode the two entities the site relies on. Anything else (&lt;, &#39; ...)
    is left exactly as published.
    """
    for entity, repl in ENTITIES:
        text = text.replace(entity, repl)
    return text


def normalize(raw_text: str) -> str:
    """
    Visible text of an HTML fragment: tags removed, &nbsp;/&amp; decoded,
    whitespace collapsed to single spaces and trimmed.

    Decoding repeats until stable so that '&amp;amp;' and '&amp;nbsp;' do not
    change on a second pass.
    """
    text = strip_tags(raw_text or "")
    while True:
        decoded = normalize_entities(text)
        if decoded == text:
            break
        text = decoded
    return normalize_ws(text)


def strip_brackets(text: str) -> str:
    """
    Remove '[...]' tags like [CAPTAIN] or [unavailable]. No nesting.
    """
    return BRACKET_RE.sub("", text).strip()


def strip_record_suffix(text: str) -> str:
    """
    Remove a trailing season record such as 'Team (6 - 0 - 2)'.
    Parenthesized text that is not digits/hyphens ('(Champions)') is kept.
    """
    t = text.strip()
    if not t.endswith(")"):
        return t
    open_idx = t.rfind("(")
    if open_idx <= 0:
        return t
    inner = t[open_idx + 1:-1]
    has_digit = any(ch.isdigit() for ch in inner)
    only_record_chars = all(ch.isdigit() or ch == "-" or ch.isspace() for ch in inner)
    if has_digit and "-" in inner and only_record_chars:
        return t[:open_idx].strip()
    return t


def letters_only_trim(text: str) -> str:
    """
    Keep the leading run of letters and spaces: 'Failurewood Hills (6 - 0 - 2)'
    -> 'Failurewood Hills', 'Team-Name' -> 'Team'.
    """
    t = text.strip()
    end = len(t)
    for i, ch in enumerate(t):
        if not (ch.isalpha() or ch.isspace()):
            end = i
            break
    return t[:end].strip()


def sanitize_team_filename(name: str, team_id: int = 0) -> str:
    """
    'Red Star  Pathfinders!' -> 'Red_Star_Pathfinders'.
    ASCII letters/digits are kept, whitespace runs become one '_',
    '-' and '_' survive, everything else is dropped.
    """
    out: list[str] = []
    last_us = False
    for ch in name:
        if ch.isascii() and ch.isalnum():
            out.append(ch)
            last_us = False
        elif ch.isspace():
            if not last_us:
                out.append("_")
                last_us = True
        elif ch == "-":
            out.append(ch)
            last_us = False
        elif ch == "_":
            if not last_us:
                out.append(ch)
            last_us = True
    stem = "".join(out).strip("_")
    return stem or f"team_{team_id}"


# ===================== NETWORK =====================

def page_url(path: str, settings: Optional[Settings] = None) -> str:
    settings = settings or Settings()
    return settings.base_url.rstrip("/") + "/" + path.lstrip("/")


def fetch_page(
    path: str,
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """
    GET one Brutalball page. Any transport error or non-200 status becomes a
    FetchError; retrying is left to the caller.
    """
    settings = settings or Settings()
    url = page_url(path, settings)
    getter = session or requests
    logger.debug("Fetching HTML: %s", url)
    try:
        resp = getter.get(
            url,
            headers={"User-Agent": settings.user_agent},
            timeout=settings.request_timeout,
        )
    except requests.RequestException as e:
        raise FetchError(f"GET {url} failed: {e}", context={"path": path}) from e

    if resp.status_code != 200:
        raise FetchError(
            f"GET {url} returned HTTP {resp.status_code}",
            context={"path": path, "status_code": resp.status_code},
        )

    # The site does not always declare a charset; decode lossily as UTF-8
    return resp.content.decode("utf-8", errors="replace")
