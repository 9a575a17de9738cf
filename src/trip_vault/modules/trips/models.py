from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from trip_vault.core.models import Base, Timestamped, UUIDPrimaryKey


class TripSummaryRecord(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "trip_metadata"

    trip_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    start_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    end_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    duration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    destinations: Mapped[list[str]] = mapped_column(default=list)
    passengers: Mapped[list[str]] = mapped_column(default=list)
    primary_airline: Mapped[str | None] = mapped_column(String(100), nullable=True)
    total_flights: Mapped[int] = mapped_column(Integer, default=0)
    total_hotels: Mapped[int] = mapped_column(Integer, default=0)
    total_activities: Mapped[int] = mapped_column(Integer, default=0)
    total_documents: Mapped[int] = mapped_column(Integer, default=0)
