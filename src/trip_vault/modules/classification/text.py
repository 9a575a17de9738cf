from __future__ import annotations

import re

KEYWORD_SCAN_LIMIT = 2000
DATE_SCAN_LIMIT = 1000


def clean_text(text: str | None) -> str:
    return (text or "").replace("\u202f", " ").replace("\xa0", " ")


def fold(text: str | None) -> str:
    return clean_text(text).lower()


def head(text: str | None, limit: int) -> str:
    return clean_text(text)[:limit]


def collapse_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def truncate(value: str, limit: int) -> str:
    return value if len(value) <= limit else value[:limit]
