from __future__ import annotations

import enum


class Category(str, enum.Enum):
    FLIGHTS = "flights"
    HOTELS = "hotels"
    CAR_RENTAL = "car_rental"
    ACTIVITIES = "activities"
    INSURANCE = "insurance"
    MISC = "misc"


FOLDER_CATEGORIES: dict[str, Category] = {
    "flights": Category.FLIGHTS,
    "activities": Category.ACTIVITIES,
    "car rental": Category.CAR_RENTAL,
    "car_rental": Category.CAR_RENTAL,
    "car-rental": Category.CAR_RENTAL,
    "hotels": Category.HOTELS,
    "insurance": Category.INSURANCE,
    "personal docs": Category.MISC,
    "personal": Category.MISC,
}


def folder_to_category(folder_name: str | None) -> Category | None:
    if not folder_name:
        return None
    return FOLDER_CATEGORIES.get(" ".join(folder_name.split()).lower())
