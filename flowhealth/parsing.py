"""Shared text-parsing helpers used by the dashboard extractors.

Each function accepts a raw string (or None) and returns a parsed value or
None. Nothing in here raises on malformed page text: a value that cannot be
read is simply absent.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

# Grouping separators: comma, plain and no-break spaces, apostrophe (1'234).
_GROUPING_RE = re.compile(r"(?<=\d)[,' \u00a0\u2009\u202f](?=\d{3}\b)")
# A minus sign only counts when it does not follow a word ("tasks-1234").
_NUMBER_RE = re.compile(r"(?:(?<!\w)-)?\d+(?:\.\d+)?")
_INTEGER_RE = re.compile(r"\d+")
_RATIO_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:of|/)\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass(frozen=True)
class Ratio:
    used: int | float
    limit: int | float


def _strip_grouping(text: str) -> str:
    return _GROUPING_RE.sub("", text)


def _as_number(raw: str) -> int | float | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


def to_number(text: str | None) -> int | float | None:
    """Parse the leading number from text like '1,234 tasks', '$49.99' or '42%'.

    Grouping separators are removed first; currency symbols, unit words and
    other decoration before the number are skipped. Returns None when the
    text has no digits at all.
    """
    if not text:
        return None
    if not isinstance(text, str):
        text = str(text)
    cleaned = _strip_grouping(text.strip())
    match = _NUMBER_RE.search(cleaned)
    if not match:
        return None
    return _as_number(match.group(0))


def extract_ratio_pattern(text: str | None) -> Ratio | None:
    """Find a '<used> of <limit>' or '<used> / <limit>' pair anywhere in text."""
    if not text:
        return None
    match = _RATIO_RE.search(_strip_grouping(text))
    if not match:
        return None
    used = _as_number(match.group(1))
    limit = _as_number(match.group(2))
    if used is None or limit is None:
        return None
    return Ratio(used=used, limit=limit)


def largest_number(text: str | None) -> int | None:
    """Return the largest integer found in a block of text.

    Last-resort heuristic for values sitting next to a label. It is known to
    pick the wrong number when a bigger one (a year, a limit) shares the
    block, so callers only use it after every structural locator failed.
    """
    if not text:
        return None
    numbers = [int(n) for n in _INTEGER_RE.findall(_strip_grouping(text))]
    return max(numbers) if numbers else None


def round_half_up(value: float) -> int:
    """Round like Math.round: halves go up, so 12.5 -> 13 (not banker's 12)."""
    return int(math.floor(value + 0.5))


def as_count(value: int | float | None) -> int | None:
    """Coerce a parsed number to a non-negative item count."""
    if value is None:
        return None
    if value < 0:
        return None
    return int(value)


def clean_label(text: str | None) -> str | None:
    """Collapse whitespace in a free-text label; empty labels become None."""
    if not text:
        return None
    collapsed = " ".join(text.split())
    return collapsed or None
