"""
Text Utilities

Helpers for the raw strings the extraction layer hands us: character
counting, relative-date parsing and summary statistics over a batch of
reviews.

parse_date_text() does full regex parsing of relative dates. The burst
heuristic in the detector does NOT use it; it matches a plain
keyword list by substring (see rules.RECENT_DATE_KEYWORDS).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional


# Reviews dated within this many days count as recent
RECENT_DAYS = 30


def count_characters(text: Optional[str]) -> int:
    """Length in code points. Emoji outside the BMP count once."""
    if not text or not isinstance(text, str):
        return 0
    return len(text)


# ============================================================
# RELATIVE DATES
# ============================================================

@dataclass
class DateInfo:
    is_recent: bool
    days_ago: Optional[float]
    unit: str                 # "minutes" | "hours" | "days" | ... | "unknown"
    original_text: str = ""


# (regex, days per unit, unit name). Japanese first, then English.
_DATE_PATTERNS: list[tuple[re.Pattern, float, str]] = [
    (re.compile(r"(\d+)分前"), 1 / 1440, "minutes"),
    (re.compile(r"(\d+)時間前"), 1 / 24, "hours"),
    (re.compile(r"(\d+)日前"), 1, "days"),
    (re.compile(r"(\d+)週間前"), 7, "weeks"),
    (re.compile(r"(\d+)か?月前"), 30, "months"),
    (re.compile(r"(\d+)年前"), 365, "years"),
    (re.compile(r"(\d+)\s*minutes?\s*ago"), 1 / 1440, "minutes"),
    (re.compile(r"(\d+)\s*hours?\s*ago"), 1 / 24, "hours"),
    (re.compile(r"(\d+)\s*days?\s*ago"), 1, "days"),
    (re.compile(r"(\d+)\s*weeks?\s*ago"), 7, "weeks"),
    (re.compile(r"(\d+)\s*months?\s*ago"), 30, "months"),
    (re.compile(r"(\d+)\s*years?\s*ago"), 365, "years"),
]

# "a day ago", "an hour ago": English article instead of a number
_ARTICLE = re.compile(r"^(?:a|an)\s+(?=\w+\s+ago)")


def parse_date_text(date_text: Optional[str]) -> DateInfo:
    """
    Parse a relative date such as "3日前" or "2 weeks ago".

    Returns DateInfo with unit "unknown" and days_ago None when nothing
    matches. Absolute dates are not parsed.
    """
    if not date_text or not isinstance(date_text, str):
        return DateInfo(is_recent=False, days_ago=None, unit="unknown")

    text = _ARTICLE.sub("1 ", date_text.lower().strip())

    for pattern, multiplier, unit in _DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            days_ago = int(match.group(1)) * multiplier
            return DateInfo(
                is_recent=days_ago <= RECENT_DAYS,
                days_ago=days_ago,
                unit=unit,
                original_text=date_text,
            )

    return DateInfo(
        is_recent=False, days_ago=None, unit="unknown", original_text=date_text,
    )


# ============================================================
# REVIEW STATISTICS
# ============================================================

def calculate_review_stats(reviews: Iterable) -> dict:
    """Counts and ratios over a batch of Review objects."""
    reviews = list(reviews)
    if not reviews:
        return {
            "total_count": 0,
            "average_length": 0,
            "photos_count": 0,
            "recent_count": 0,
            "photos_ratio": 0.0,
            "recent_ratio": 0.0,
        }

    total = len(reviews)
    total_length = sum(r.text_length for r in reviews)
    photos = sum(1 for r in reviews if r.has_photos)
    recent = sum(1 for r in reviews if parse_date_text(r.date_text).is_recent)

    return {
        "total_count": total,
        "average_length": int(total_length / total + 0.5),
        "photos_count": photos,
        "recent_count": recent,
        "photos_ratio": photos / total,
        "recent_ratio": recent / total,
    }
