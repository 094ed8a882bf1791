"""ANSI helpers for printing ranked items.

Matched characters are wrapped in SGR sequences; clipping counts display
columns and leaves escape sequences intact.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
TAB_STOP = 8
MATCH_START = "\033[1;33m"
MATCH_END = "\033[22;39m"
RESET = "\033[0m"


def char_display_width(ch: str, col: int) -> int:
    """Return terminal column width for one character at visual column ``col``.

    Tabs expand to the next 8-column stop, combining marks consume no columns,
    and East Asian wide/fullwidth characters consume two.
    """
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def highlight_chars(text: str, offsets: Iterable[int]) -> str:
    """Wrap characters of ``text`` at ``offsets`` in match highlighting.

    Adjacent offsets share one highlighted run. Offsets out of range are ignored.
    """
    marked = {offset for offset in offsets if 0 <= offset < len(text)}
    if not marked:
        return text

    out: list[str] = []
    in_match = False
    for i, ch in enumerate(text):
        if i in marked and not in_match:
            out.append(MATCH_START)
            in_match = True
        elif i not in marked and in_match:
            out.append(MATCH_END)
            in_match = False
        out.append(ch)
    if in_match:
        out.append(MATCH_END)
    return "".join(out)


def clip_ansi_line(text: str, max_cols: int) -> str:
    """Trim a styled line to at most ``max_cols`` display columns.

    Escape sequences are kept and do not count toward width; tabs become spaces.
    A reset is appended when the clipped line contains styling.
    """
    if max_cols <= 0 or not text:
        return ""

    out: list[str] = []
    col = 0
    i = 0
    n = len(text)
    styled = False
    while i < n:
        if text[i] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, i)
            if match:
                out.append(match.group(0))
                styled = True
                i = match.end()
                continue
        ch = text[i]
        w = char_display_width(ch, col)
        if col + w > max_cols:
            break
        out.append(" " * w if ch == "\t" else ch)
        col += w
        i += 1

    if styled:
        out.append(RESET)
    return "".join(out)
