from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from trip_vault.modules.classification.categories import Category, folder_to_category
from trip_vault.modules.classification.text import KEYWORD_SCAN_LIMIT, clean_text, fold, head

# Flight numbers in text must be uppercase tokens; filenames are free-form so
# any case is accepted as long as the code sits between separators.
_TEXT_FLIGHT_NUMBER_RE = re.compile(r"\b[A-Z]{2}\d{3,4}\b")
_FILENAME_FLIGHT_NUMBER_RE = re.compile(r"(?i)(?:^|[\s_\-])[A-Z]{2}\d{3,4}(?:$|[\s_\-.])")
_FILENAME_PNR_RE = re.compile(r"(?i)(?:^|[\s_\-])PNR[-_]")
_PNR_TOKEN_RE = re.compile(r"\bpnr\b")
_FILENAME_AIRPORT_PAIR_RE = re.compile(r"(?<![A-Za-z])[A-Z]{3}-[A-Z]{3}(?![A-Za-z])")


def _keywords(*words: str) -> re.Pattern[str]:
    # Keywords must start a word; digits and underscores count as separators.
    return re.compile(r"(?<![a-z])(?:" + "|".join(words) + r")")


_ACTIVITY_RE = _keywords(
    "tour",
    "cruise",
    "activity",
    "zoo",
    "safari",
    "museum",
    "park",
    "ticket",
    "excursion",
    "transfer",
    "stargazing",
    "hobbiton",
    "milford",
    "glacier",
    "helicopter",
    r"sea.world",
    r"movie.world",
    "waitomo",
    "scenic",
)
_HOTEL_RE = _keywords(
    "hotel",
    "resort",
    "inn",
    "lodge",
    "accommodation",
    r"check.?in",
    r"check.?out",
    "room",
    r"nights?\b",
)
_CAR_RENTAL_RE = _keywords(
    "rental",
    r"car.hire",
    "hertz",
    "avis",
    "enterprise",
    "budget",
    "thrifty",
    "dollar",
    "sixt",
    r"drop.?off",
)
_INSURANCE_RE = _keywords("insurance", r"travel.protect", "policy", "cover", "claim")
_FLIGHT_KEYWORD_RE = _keywords(
    "flight", "airline", "boarding", "departure", "arrival", "airways", "depart"
)


@dataclass(frozen=True)
class ClassificationInput:
    filename: str
    text: str
    combined: str

    @classmethod
    def build(cls, filename: str, text: str | None) -> ClassificationInput:
        filename = filename or ""
        text = clean_text(text)
        combined = fold(filename) + " " + fold(head(text, KEYWORD_SCAN_LIMIT))
        return cls(filename=filename, text=text, combined=combined)


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    predicate: Callable[[ClassificationInput], bool]
    category: Category


def has_flight_number(doc: ClassificationInput) -> bool:
    return bool(
        _FILENAME_FLIGHT_NUMBER_RE.search(doc.filename) or _TEXT_FLIGHT_NUMBER_RE.search(doc.text)
    )


def has_pnr(doc: ClassificationInput) -> bool:
    return bool(_FILENAME_PNR_RE.search(doc.filename) or _PNR_TOKEN_RE.search(doc.combined))


def has_airport_pair_in_filename(doc: ClassificationInput) -> bool:
    return bool(_FILENAME_AIRPORT_PAIR_RE.search(doc.filename))


def has_flight_signals(doc: ClassificationInput) -> bool:
    return has_flight_number(doc) or has_pnr(doc) or has_airport_pair_in_filename(doc)


def _matches(pattern: re.Pattern[str]) -> Callable[[ClassificationInput], bool]:
    def predicate(doc: ClassificationInput) -> bool:
        return bool(pattern.search(doc.combined))

    return predicate


# Specific signals come before generic ones: "departure" inside a hotel
# confirmation must not turn it into a flight.
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("flight_signals", has_flight_signals, Category.FLIGHTS),
    ClassificationRule("activity_keywords", _matches(_ACTIVITY_RE), Category.ACTIVITIES),
    ClassificationRule("hotel_keywords", _matches(_HOTEL_RE), Category.HOTELS),
    ClassificationRule("car_rental_keywords", _matches(_CAR_RENTAL_RE), Category.CAR_RENTAL),
    ClassificationRule("insurance_keywords", _matches(_INSURANCE_RE), Category.INSURANCE),
    ClassificationRule("flight_keywords", _matches(_FLIGHT_KEYWORD_RE), Category.FLIGHTS),
)


def match_rule(
    filename: str,
    text: str | None,
    *,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> ClassificationRule | None:
    doc = ClassificationInput.build(filename, text)
    for rule in rules:
        if rule.predicate(doc):
            return rule
    return None


def classify(filename: str, text: str | None, folder_hint: str | None = None) -> Category:
    hinted = folder_to_category(folder_hint)
    if hinted is not None:
        return hinted
    rule = match_rule(filename, text)
    return rule.category if rule else Category.MISC
