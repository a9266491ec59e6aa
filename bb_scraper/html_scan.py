# html_scan.py
"""
Case-insensitive marker search over raw page text.

The Brutalball pages are old hand-written PHP output (unquoted attributes,
mixed case, <th> cells outside <tr>), so extraction works on plain string
offsets instead of a parsed tree. Every helper here returns slices of the
original text; callers normalize the pieces they keep.
"""
from __future__ import annotations

import re
import string
from typing import Iterator, List, Optional, Tuple

from .utils import normalize

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)
_BARE_TAG_RE = re.compile(r"^<[a-z0-9]+$")
_TAG_END_CHARS = " \t\r\n>/"

ROW_CLASSES = ('class="playerrow"', 'class="playerrow1"')
ROW_SNIFF_CHARS = 200


def to_lower(text: str) -> str:
    """ASCII-only lowercasing; keeps offsets aligned with the original text."""
    return text.translate(_ASCII_LOWER)


def _find_open(lc: str, open_lc: str, start: int) -> int:
    # '<th' must not match '<thead', '<a' must not match '<abbr'
    if not _BARE_TAG_RE.match(open_lc):
        return lc.find(open_lc, start)
    pos = lc.find(open_lc, start)
    while pos != -1:
        nxt = pos + len(open_lc)
        if nxt >= len(lc) or lc[nxt] in _TAG_END_CHARS:
            return pos
        pos = lc.find(open_lc, nxt)
    return -1


def slice_between_ci(text: str, open_pat: str, close_pat: str) -> Optional[str]:
    """
    Text between the end of the first `open_pat` opener and the next
    `close_pat`. slice_between_ci(doc, "<table class=teamroster", "</table>")
    gives the roster table body.
    """
    lc = to_lower(text)
    open_idx = _find_open(lc, to_lower(open_pat), 0)
    if open_idx == -1:
        return None
    gt = text.find(">", open_idx)
    if gt == -1:
        return None
    after_open = gt + 1
    close_idx = lc.find(to_lower(close_pat), after_open)
    if close_idx == -1:
        return None
    return text[after_open:close_idx]


def _next_block(
    text: str, lc: str, open_lc: str, close_lc: str, start: int
) -> Optional[Tuple[int, int]]:
    pos = _find_open(lc, open_lc, start)
    if pos == -1:
        return None
    gt = text.find(">", pos)
    if gt == -1:
        return None
    close_idx = lc.find(close_lc, gt + 1)
    if close_idx == -1:
        return None
    return pos, close_idx + len(close_lc)


def next_tag_block_ci(
    text: str, open_tag: str, close_tag: str, start: int = 0
) -> Optional[Tuple[int, int]]:
    """
    (start, end) of the next '<open ...>...</close>' block at or after `start`.
    `end` points just past the closing tag. Blocks do not nest.
    """
    if start > len(text):
        return None
    return _next_block(text, to_lower(text), to_lower(open_tag), to_lower(close_tag), start)


def tag_blocks(text: str, open_tag: str, close_tag: str) -> Iterator[str]:
    """Yield every '<open ...>...</close>' block in document order."""
    lc = to_lower(text)
    open_lc = to_lower(open_tag)
    close_lc = to_lower(close_tag)
    pos = 0
    while True:
        found = _next_block(text, lc, open_lc, close_lc, pos)
        if found is None:
            return
        start, end = found
        yield text[start:end]
        pos = end


def inner_after_open_tag(block: str) -> str:
    """'<td class=x>INNER</td>' -> 'INNER'."""
    open_end = block.find(">")
    close_start = block.rfind("<")
    if open_end == -1 or close_start <= open_end:
        return ""
    return block[open_end + 1:close_start]


def opener(block: str) -> str:
    """The opening tag text of a block, '<td class=x>' -> '<td class=x'."""
    end = block.find(">")
    return block if end == -1 else block[:end]


def has_class(block: str, needle: str) -> bool:
    """Loose class check on the opener: quoted, single-quoted, unquoted or multi-class."""
    lc = to_lower(opener(block))
    needle = to_lower(needle)
    return "class=" in lc and needle in lc


def is_data_row(tr_block: str) -> bool:
    """<tr class="playerrow"> and <tr class="playerrow1"> mark data rows."""
    head = to_lower(tr_block[:ROW_SNIFF_CHARS])
    return any(marker in head for marker in ROW_CLASSES)


def attr_value(block: str, name: str) -> Optional[str]:
    """
    Value of attribute `name` in the block's opener. Handles "double",
    'single' and unquoted values.
    """
    op = opener(block)
    lc = to_lower(op)
    key = to_lower(name) + "="
    idx = lc.find(key)
    if idx == -1:
        return None
    val = op[idx + len(key):].lstrip()
    if val[:1] in ('"', "'"):
        quote = val[0]
        end = val.find(quote, 1)
        return val[1:] if end == -1 else val[1:end]
    for i, ch in enumerate(val):
        if ch.isspace() or ch == ">":
            return val[:i]
    return val


def digits_after(text: str, needle: str) -> str:
    """
    Digits immediately following the first case-insensitive `needle`.
    digits_after("game.php?i=2241", "game.php?i=") -> "2241"; "" if none.
    """
    idx = to_lower(text).find(to_lower(needle))
    if idx == -1:
        return ""
    return leading_digits(text[idx + len(needle):])


def leading_digits(text: str) -> str:
    out: List[str] = []
    for ch in text:
        if not ch.isdigit() or not ch.isascii():
            break
        out.append(ch)
    return "".join(out)


def first_digit_run(text: str) -> str:
    """First run of ASCII digits anywhere in `text` ('Season 5' -> '5')."""
    m = re.search(r"[0-9]+", text)
    return m.group(0) if m else ""


def title_season(doc: str) -> str:
    """
    Season number from '<title>Brutalball Schedule - Season 5</title>',
    '' when the title has no 'Season N'.
    """
    found = next_tag_block_ci(doc, "<title", "</title>")
    if found is None:
        return ""
    title = normalize(inner_after_open_tag(doc[found[0]:found[1]]))
    idx = to_lower(title).find("season")
    if idx == -1:
        return ""
    return first_digit_run(title[idx + len("season"):])
