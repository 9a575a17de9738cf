from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from trip_vault.core.logging import get_logger, log_event
from trip_vault.modules.documents.service import list_documents, to_result
from trip_vault.modules.trips.aggregator import DEFAULT_TRIP_NAME, TripSummary, aggregate
from trip_vault.modules.trips.models import TripSummaryRecord

logger = get_logger(__name__)


def get_trip_summary(session: Session) -> TripSummaryRecord | None:
    return session.scalar(
        select(TripSummaryRecord)
        .order_by(TripSummaryRecord.updated_at.desc(), TripSummaryRecord.created_at.desc())
        .limit(1)
    )


def save_trip_summary(session: Session, summary: TripSummary) -> TripSummaryRecord:
    """Overwrite the single trip summary row, creating it on first use."""
    record = get_trip_summary(session)
    created = record is None
    if record is None:
        record = TripSummaryRecord()

    payload = summary.to_dict()
    record.trip_name = payload["trip_name"]
    record.start_date = payload["start_date"]
    record.end_date = payload["end_date"]
    record.duration_days = payload["duration_days"]
    record.destinations = payload["destinations"]
    record.passengers = payload["passengers"]
    record.primary_airline = payload["primary_airline"]
    record.total_flights = payload["total_flights"]
    record.total_hotels = payload["total_hotels"]
    record.total_activities = payload["total_activities"]
    record.total_documents = payload["total_documents"]
    session.add(record)
    session.commit()
    session.refresh(record)

    log_event(
        logger,
        "trips.summary.saved",
        trip_summary_id=str(record.id),
        created=created,
        trip_name=record.trip_name,
        total_documents=record.total_documents,
    )
    return record


def refresh_trip_summary(session: Session) -> TripSummaryRecord:
    results = [to_result(doc) for doc in list_documents(session)]
    return save_trip_summary(session, aggregate(results))


def summary_from_record(record: TripSummaryRecord) -> TripSummary:
    return TripSummary(
        start_date=record.start_date,
        end_date=record.end_date,
        duration_days=record.duration_days,
        passengers=tuple(record.passengers or ()),
        destinations=tuple(record.destinations or ()),
        primary_airline=record.primary_airline,
        total_flights=record.total_flights or 0,
        total_hotels=record.total_hotels or 0,
        total_activities=record.total_activities or 0,
        total_documents=record.total_documents or 0,
        trip_name=record.trip_name or DEFAULT_TRIP_NAME,
    )
