from __future__ import annotations

import re

from trip_vault.core.ordered_set import OrderedCappedSet
from trip_vault.modules.classification.categories import Category
from trip_vault.modules.classification.text import clean_text, collapse_whitespace

MAX_DOCUMENT_PASSENGERS = 4

_TIME = r"(\d{1,2}:\d{2}(?:[ \t]*[AP]M\b)?)"

# Passenger names. Any "name:" label counts unless it names a place or a product.
_NON_PERSON_LABELS = ("hotel", "property", "resort", "lodge", "inn", "tour", "activity", "company")
_LABELLED_NAME_RE = re.compile(
    r"(?i:\b"
    + "".join(rf"(?<!{label} )" for label in _NON_PERSON_LABELS)
    + r"name|\bpassenger|\btravell?er)"
    r"[ \t]*:\s+([A-Z][a-z]+ [A-Z][a-z]+)\b",
    re.MULTILINE,
)
_TITLES = ("MR", "MRS", "MS", "DR")
# The capture sits inside a lookahead so that every title starts its own
# match, even when it is part of the previous passenger's run of capitals.
_TITLED_NAME_RE = re.compile(
    r"\b(?:MRS|MR|MS|DR)\.?[ \t]+(?=([A-Z]+\b(?:[ \t]+[A-Z]+\b)*))"
)

# Flights.
_TEXT_FLIGHT_NUMBER_RE = re.compile(r"\b([A-Z]{2}\d{3,4})\b")
_FILENAME_FLIGHT_NUMBER_RE = re.compile(r"(?i)(?:^|[\s_\-])([A-Z]{2}\d{3,4})(?=$|[\s_\-.])")
_PNR_RE = re.compile(
    r"(?i:\b(?:PNR|booking[ \t]*(?:ref(?:erence)?|code)"
    r"|confirmation(?:[ \t]*(?:number|no|code))?)\b)"
    r"\.?[ \t]*[:#]?[ \t]*([A-Z0-9]{5,8})\b"
)
_FILENAME_PNR_RE = re.compile(r"(?i)PNR[-_]([A-Z0-9]{5,8})")
_TEXT_ROUTE_RE = re.compile(r"\b([A-Z]{3})[ \t]*(?:→|->|–|-|\b(?i:to)\b)[ \t]*([A-Z]{3})\b")
_FILENAME_ROUTE_RE = re.compile(r"(?i)(?<![A-Za-z])([A-Z]{3})-([A-Z]{3})(?![A-Za-z])")
_DEPARTURE_TIME_RE = re.compile(
    r"(?i)\b(?:departs?|departure|dep)(?:[ \t]+time)?\b[:\s]+" + _TIME
)
_ARRIVAL_TIME_RE = re.compile(
    r"(?i)\b(?:arrives?|arrival|arr)(?:[ \t]+time)?\b[:\s]+" + _TIME
)
_AIRLINE_LABEL_RE = re.compile(
    r"(?im)(?:\b(?:airline|carrier)[ \t]*:|\boperated[ \t]+by\b:?)[ \t]*"
    r"([A-Za-z][A-Za-z ]{1,40}?)[ \t]*(?:,|\bflight\b|$)"
)
KNOWN_AIRLINES = (
    "Virgin Australia",
    "Jetstar",
    "Qantas",
    "Emirates",
    "Air New Zealand",
    "Singapore Airlines",
)
_KNOWN_AIRLINE_RE = re.compile(
    r"(?i)\b(" + "|".join(re.escape(name) for name in KNOWN_AIRLINES) + r")\b"
)

# Hotels.
_HOTEL_LABEL_RE = re.compile(
    r"(?im)\b(?:hotel|resort|inn|lodge|property)(?:[ \t]+name)?[ \t]*:[ \t]*([^\n]+)"
)
_HOTEL_LINE_RE = re.compile(
    r"(?m)^[ \t]*([A-Z][A-Za-z&' ]*?(?:Hotel|Resort|Inn|Lodge|Suites|Motel))\b"
)
_STAY_DATE = r"(\d{1,2}[/-]\d{1,2}[/-]\d{2,4}|\d{1,2}[ \t]+[A-Za-z]+[ \t]+\d{4})"
_CHECK_IN_RE = re.compile(
    r"(?i)\b(?:check[\s-]?in|arrival)(?:[ \t]+date)?\b[:\s]+" + _STAY_DATE
)
_CHECK_OUT_RE = re.compile(
    r"(?i)\b(?:check[\s-]?out|departure)(?:[ \t]+date)?\b[:\s]+" + _STAY_DATE
)

# Car rental.
_PICKUP_LOCATION_RE = re.compile(
    r"(?i)\bpick[ \t-]?up(?:[ \t]+(?:location|branch|depot))?[ \t]*:[ \t]*([^\n]+)"
)
_DROPOFF_LOCATION_RE = re.compile(
    r"(?i)\b(?:drop[ \t-]?off(?:[ \t]+(?:location|branch|depot))?"
    r"|return[ \t]+(?:location|branch|depot))[ \t]*:[ \t]*([^\n]+)"
)
_VEHICLE_RE = re.compile(
    r"(?i)\b(?:vehicle|car|model)(?:[ \t]+(?:type|class|group))?[ \t]*:[ \t]*([^\n]{3,40})"
)
_PICKUP_TIME_RE = re.compile(r"(?i)\bpick[ \t-]?up[ \t]+time\b[:\s]+" + _TIME)
_FILENAME_BOOKING_RE = re.compile(
    r"(?i:booking)[-_ ]?((?=[A-Z]*\d)[A-Z0-9]{4,20})(?![A-Za-z0-9])"
)

# Activities, and booking references shared with car rentals.
_START_TIME_RE = re.compile(
    r"(?i)\b(?:departs?|starts?|begins?|start[ \t]+time|time)\b[:\s]+" + _TIME
)
_END_TIME_RE = re.compile(
    r"(?i)\b(?:ends?|returns?|finish(?:es)?)(?:[ \t]+time)?\b[:\s]+" + _TIME
)
_TIME_RANGE_RE = re.compile(
    r"(?i)(\d{1,2}[.:]\d{2}\s*(?:[AP]M)?)\s*[-–]\s*(\d{1,2}[.:]\d{2}\s*(?:[AP]M)?)"
)
_LOCATION_RE = re.compile(
    r"(?i)\b(?:location|meeting[ \t]+point|departs?[ \t]+from|departure[ \t]+point)"
    r"[ \t]*:?[ \t]*(\S[^\n]{2,79})"
)
_BOOKING_REF_RE = re.compile(
    r"(?i:\b(?:(?:booking|confirmation|reservation)"
    r"(?:[ \t]*(?:ref(?:erence)?|number|id|no|code))?|ref(?:erence)?)\b)"
    r"\.?[ \t]*[:#][ \t]*([A-Z0-9][A-Z0-9-]{3,19})(?![A-Za-z0-9-])"
)


def extract_passengers(text: str | None, *, limit: int = MAX_DOCUMENT_PASSENGERS) -> list[str]:
    t = clean_text(text)
    passengers = OrderedCappedSet(limit)

    for m in _LABELLED_NAME_RE.finditer(t):
        name = collapse_whitespace(m.group(1))
        if 3 < len(name) < 50:
            passengers.add(name)

    for m in _TITLED_NAME_RE.finditer(t):
        words: list[str] = []
        for word in m.group(1).split():
            if word in _TITLES:
                break
            words.append(word)
        words = words[:3]
        if len(words) < 2:
            continue
        name = " ".join(word[:1].upper() + word[1:].lower() for word in words)
        if 3 < len(name) < 50:
            passengers.add(name)

    return passengers.to_list()


def _first(pattern: re.Pattern[str], text: str) -> str | None:
    m = pattern.search(text)
    if not m:
        return None
    value = collapse_whitespace(m.group(1))
    return value or None


def _booking_ref(text: str) -> str | None:
    return _first(_BOOKING_REF_RE, text)


def _flight_fields(text: str, filename: str) -> dict:
    meta: dict = {}

    flight_number = _first(_TEXT_FLIGHT_NUMBER_RE, text) or _first(
        _FILENAME_FLIGHT_NUMBER_RE, filename
    )
    if flight_number:
        meta["flight_number"] = flight_number.upper()

    pnr = _first(_PNR_RE, text) or _first(_FILENAME_PNR_RE, filename)
    if pnr:
        meta["pnr"] = pnr.upper()

    route = _TEXT_ROUTE_RE.search(text) or _FILENAME_ROUTE_RE.search(filename)
    if route:
        meta["departure_airport"] = route.group(1).upper()
        meta["arrival_airport"] = route.group(2).upper()

    departure_time = _first(_DEPARTURE_TIME_RE, text)
    if departure_time:
        meta["departure_time"] = departure_time
    arrival_time = _first(_ARRIVAL_TIME_RE, text)
    if arrival_time:
        meta["arrival_time"] = arrival_time

    airline = _first(_AIRLINE_LABEL_RE, text)
    if not airline:
        known = _KNOWN_AIRLINE_RE.search(text)
        if known:
            airline = next(
                name for name in KNOWN_AIRLINES if name.lower() == known.group(1).lower()
            )
    if airline:
        meta["airline"] = airline

    return meta


def _hotel_fields(text: str) -> dict:
    meta: dict = {}

    hotel_name = _first(_HOTEL_LABEL_RE, text) or _first(_HOTEL_LINE_RE, text)
    if hotel_name:
        meta["hotel_name"] = hotel_name

    check_in = _first(_CHECK_IN_RE, text)
    if check_in:
        meta["check_in"] = check_in
    check_out = _first(_CHECK_OUT_RE, text)
    if check_out:
        meta["check_out"] = check_out

    return meta


def _car_rental_fields(text: str, filename: str) -> dict:
    meta: dict = {}

    pickup_location = _first(_PICKUP_LOCATION_RE, text)
    if pickup_location:
        meta["pickup_location"] = pickup_location
    dropoff_location = _first(_DROPOFF_LOCATION_RE, text)
    if dropoff_location:
        meta["dropoff_location"] = dropoff_location

    vehicle = _first(_VEHICLE_RE, text)
    if vehicle:
        meta["vehicle"] = vehicle

    pickup_time = _first(_PICKUP_TIME_RE, text)
    if pickup_time:
        meta["pickup_time"] = pickup_time

    booking_ref = _booking_ref(text) or _first(_FILENAME_BOOKING_RE, filename)
    if booking_ref:
        meta["booking_ref"] = booking_ref.upper()

    return meta


def _activity_fields(text: str, filename: str) -> dict:
    meta: dict = {}

    for line in text.splitlines():
        line = line.strip()
        if len(line) > 5:
            meta["activity_name"] = line[:100]
            break

    start_time = _first(_START_TIME_RE, text)
    end_time = _first(_END_TIME_RE, text)
    if not start_time and not end_time:
        times = _TIME_RANGE_RE.search(filename) or _TIME_RANGE_RE.search(text)
        if times:
            start_time = times.group(1).strip()
            end_time = times.group(2).strip()
    if start_time:
        meta["start_time"] = start_time
    if end_time:
        meta["end_time"] = end_time

    location = _first(_LOCATION_RE, text)
    if location:
        meta["location"] = location

    booking_ref = _booking_ref(text)
    if booking_ref:
        meta["booking_ref"] = booking_ref

    return meta


def extract_metadata(text: str | None, category: Category | str, filename: str) -> dict:
    t = clean_text(text)
    filename = filename or ""
    category = Category(category)

    meta: dict = {}
    passengers = extract_passengers(t)
    if passengers:
        meta["passengers"] = passengers

    if category == Category.FLIGHTS:
        meta.update(_flight_fields(t, filename))
    elif category == Category.HOTELS:
        meta.update(_hotel_fields(t))
    elif category == Category.CAR_RENTAL:
        meta.update(_car_rental_fields(t, filename))
    elif category == Category.ACTIVITIES:
        meta.update(_activity_fields(t, filename))

    return meta
