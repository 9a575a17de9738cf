from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from trip_vault.modules.classification.categories import Category
from trip_vault.modules.classification.schemas import DocumentResult


@dataclass(frozen=True)
class TimelineItem:
    filename: str
    category: Category
    title: str
    time: str
    subtitle: str


@dataclass(frozen=True)
class TimelineDay:
    date: str
    items: tuple[TimelineItem, ...]


def _timeline_item(result: DocumentResult) -> TimelineItem:
    meta = result.metadata
    title = result.title or ""
    time = ""
    subtitle = ""

    if result.category == Category.FLIGHTS:
        time = meta.get("departure_time") or ""
        if meta.get("departure_airport") and meta.get("arrival_airport"):
            subtitle = f"{meta['departure_airport']} → {meta['arrival_airport']}"
        if not title and meta.get("flight_number"):
            title = f"Flight {meta['flight_number']}"
    elif result.category == Category.HOTELS:
        time = "Check-in"
        subtitle = meta.get("hotel_name") or ""
    elif result.category == Category.CAR_RENTAL:
        time = meta.get("pickup_time") or "Pickup"
        subtitle = meta.get("pickup_location") or ""
    elif result.category == Category.ACTIVITIES:
        time = meta.get("start_time") or ""
        subtitle = meta.get("location") or ""
        title = title or meta.get("activity_name") or ""

    return TimelineItem(
        filename=result.filename,
        category=result.category,
        title=title,
        time=time,
        subtitle=subtitle,
    )


def build_timeline(results: Iterable[DocumentResult]) -> list[TimelineDay]:
    grouped: dict[str, list[TimelineItem]] = {}
    for result in results:
        if not result.event_date:
            continue
        grouped.setdefault(result.event_date, []).append(_timeline_item(result))

    return [
        TimelineDay(date=day, items=tuple(sorted(items, key=lambda item: item.time)))
        for day, items in sorted(grouped.items())
    ]
