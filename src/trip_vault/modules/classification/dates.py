from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date

from trip_vault.modules.classification.text import DATE_SCAN_LIMIT, head

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

MONTH_NAME_PATTERN = (
    r"Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?"
    r"|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?"
)

_DAY_MONTH_YEAR_RE = re.compile(
    r"(?i)\b(\d{1,2})\s+(" + MONTH_NAME_PATTERN + r")\s+(\d{4})\b"
)
_ISO_RE = re.compile(r"\b(\d{4})[/-](\d{2})[/-](\d{2})\b")
# Numeric dates are read day-first; locale is never inferred.
_NUMERIC_DAY_FIRST_RE = re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4})\b")


def _from_day_month_year(m: re.Match[str]) -> date:
    month = _MONTHS[m.group(2)[:3].lower()]
    return date(int(m.group(3)), month, int(m.group(1)))


def _from_iso(m: re.Match[str]) -> date:
    return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def _from_numeric_day_first(m: re.Match[str]) -> date:
    return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))


DATE_FORMATS: tuple[tuple[re.Pattern[str], Callable[[re.Match[str]], date]], ...] = (
    (_DAY_MONTH_YEAR_RE, _from_day_month_year),
    (_ISO_RE, _from_iso),
    (_NUMERIC_DAY_FIRST_RE, _from_numeric_day_first),
)


def extract_event_date(text: str | None, filename: str) -> str | None:
    haystack = f"{filename or ''} {head(text, DATE_SCAN_LIMIT)}"
    for pattern, convert in DATE_FORMATS:
        m = pattern.search(haystack)
        if not m:
            continue
        try:
            return convert(m).isoformat()
        except (KeyError, ValueError):
            continue
    return None
