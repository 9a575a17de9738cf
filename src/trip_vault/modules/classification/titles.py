from __future__ import annotations

import re

from trip_vault.modules.classification.categories import Category
from trip_vault.modules.classification.dates import MONTH_NAME_PATTERN
from trip_vault.modules.classification.text import collapse_whitespace, truncate

MAX_TITLE_LENGTH = 150
UNTITLED = "Untitled document"

_EXTENSION_RE = re.compile(r"(?i)\.pdf$")
_DATE_PREFIX_RE = re.compile(
    r"(?i)^\d{0,2}[ _]?(?:" + MONTH_NAME_PATTERN + r")(?![A-Za-z])[\s_|.\-]*"
)


def _clean(stem: str) -> str:
    return collapse_whitespace(stem.replace("_", " "))


def generate_title(filename: str, category: Category | str, metadata: dict | None) -> str:
    filename = filename or ""
    metadata = metadata or {}
    stem = _EXTENSION_RE.sub("", filename)
    title = _clean(_DATE_PREFIX_RE.sub("", stem)) or _clean(stem)

    category = Category(category)
    departure = metadata.get("departure_airport")
    arrival = metadata.get("arrival_airport")
    if category == Category.FLIGHTS and departure and arrival:
        flight_number = metadata.get("flight_number")
        suffix = f" ({flight_number})" if flight_number else ""
        title = f"{departure} → {arrival}{suffix}"
    elif category == Category.HOTELS and metadata.get("hotel_name"):
        title = str(metadata["hotel_name"])

    return truncate(title or filename.strip() or UNTITLED, MAX_TITLE_LENGTH)
