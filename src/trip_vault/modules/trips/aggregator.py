from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import date

from trip_vault.core.ordered_set import OrderedCappedSet
from trip_vault.modules.classification.categories import Category
from trip_vault.modules.classification.schemas import DocumentResult

MAX_TRIP_PASSENGERS = 6
DEFAULT_TRIP_NAME = "My Trip"


@dataclass(frozen=True)
class TripSummary:
    start_date: str | None
    end_date: str | None
    duration_days: int | None
    passengers: tuple[str, ...]
    destinations: tuple[str, ...]
    primary_airline: str | None
    total_flights: int
    total_hotels: int
    total_activities: int
    total_documents: int
    trip_name: str

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["passengers"] = list(self.passengers)
        payload["destinations"] = list(self.destinations)
        return payload


def _duration_days(start: str | None, end: str | None) -> int | None:
    if not start or not end:
        return None
    try:
        return (date.fromisoformat(end) - date.fromisoformat(start)).days + 1
    except ValueError:
        return None


def _trip_name(destinations: tuple[str, ...]) -> str:
    if len(destinations) >= 2:
        return f"{destinations[0]} → {destinations[-1]}"
    if len(destinations) == 1:
        return f"Trip to {destinations[0]}"
    return DEFAULT_TRIP_NAME


def aggregate(results: Iterable[DocumentResult]) -> TripSummary:
    results = list(results)

    dates = sorted(r.event_date for r in results if r.event_date)
    start_date = dates[0] if dates else None
    end_date = dates[-1] if dates else None

    passengers = OrderedCappedSet(MAX_TRIP_PASSENGERS)
    destinations = OrderedCappedSet()
    airlines: Counter[str] = Counter()
    counts: Counter[Category] = Counter()

    for result in results:
        counts[result.category] += 1
        passengers.update(result.metadata.get("passengers") or [])
        if result.category != Category.FLIGHTS:
            continue
        for key in ("departure_airport", "arrival_airport"):
            airport = result.metadata.get(key)
            if airport:
                destinations.add(airport)
        airline = result.metadata.get("airline")
        if airline:
            airlines[airline] += 1

    # most_common keeps first-encountered order among equal counts.
    primary_airline = airlines.most_common(1)[0][0] if airlines else None
    destination_list = tuple(destinations)

    return TripSummary(
        start_date=start_date,
        end_date=end_date,
        duration_days=_duration_days(start_date, end_date),
        passengers=tuple(passengers),
        destinations=destination_list,
        primary_airline=primary_airline,
        total_flights=counts[Category.FLIGHTS],
        total_hotels=counts[Category.HOTELS],
        total_activities=counts[Category.ACTIVITIES],
        total_documents=len(results),
        trip_name=_trip_name(destination_list),
    )
