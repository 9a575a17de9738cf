from __future__ import annotations

import os
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from trip_vault.core.db import SessionLocal
from trip_vault.core.storage import LocalObjectStorage, StorageError, get_storage
from trip_vault.modules.classification.categories import Category
from trip_vault.modules.documents import service as documents_service
from trip_vault.modules.documents.models import TravelDocument
from trip_vault.modules.documents.service import count_documents, list_documents
from trip_vault.modules.ingestion import service as ingestion_service
from trip_vault.modules.ingestion.discovery import collect_pdfs
from trip_vault.modules.ingestion.service import (
    ReclassifyAbortedError,
    SourceFolderError,
    run_ingestion,
    run_reclassify,
)
from trip_vault.modules.trips.models import TripSummaryRecord
from trip_vault.modules.trips.service import get_trip_summary

FLIGHT_TEXT = (
    "Qantas e-ticket\n"
    "Passenger: John Smith\n"
    "Flight QF410 SYD → MEL\n"
    "Departure time: 09:30\n"
    "Date: 14 Apr 2026\n"
)
HOTEL_TEXT = "Hotel: Hilton Melbourne\nCheck-in: 15/04/2026\nGuest: MR JOHN SMITH\n"
ZOO_TEXT = "Melbourne Zoo excursion\nEntry for 2 adults\n16 Apr 2026\n"


@pytest.fixture
def sample_trip(write_pdf, trip_folder):
    write_pdf("QF410_SYD-MEL.pdf", FLIGHT_TEXT)
    write_pdf("Hilton_Melbourne.pdf", HOTEL_TEXT)
    write_pdf("zoo_ticket.pdf", ZOO_TEXT)
    return trip_folder


def test_end_to_end_run(sample_trip, text_extractor):
    report = run_ingestion(sample_trip, text_extractor=text_extractor)

    assert report.discovered == 3
    assert report.succeeded == 3
    assert report.failures == []
    assert report.summary_saved is True
    by_name = {r.filename: r for r in report.results}
    assert by_name["QF410_SYD-MEL.pdf"].category == Category.FLIGHTS
    assert by_name["Hilton_Melbourne.pdf"].category == Category.HOTELS
    assert by_name["zoo_ticket.pdf"].category == Category.ACTIVITIES
    assert report.category_counts() == {"flights": 1, "hotels": 1, "activities": 1}

    summary = report.summary
    assert summary.total_flights == 1
    assert summary.total_hotels == 1
    assert summary.total_activities == 1
    assert summary.destinations == ("SYD", "MEL")
    assert summary.start_date == "2026-04-14"
    assert summary.end_date == "2026-04-16"
    assert summary.passengers == ("John Smith",)

    with SessionLocal() as session:
        docs = list_documents(session)
        assert [d.filename for d in docs] == [
            "QF410_SYD-MEL.pdf",
            "Hilton_Melbourne.pdf",
            "zoo_ticket.pdf",
        ]
        flight = docs[0]
        assert flight.storage_path == "flights/QF410_SYD-MEL.pdf"
        assert flight.title == "SYD → MEL (QF410)"
        assert flight.event_date == "2026-04-14"
        assert flight.doc_metadata["airline"] == "Qantas"
        assert flight.raw_text == FLIGHT_TEXT

        record = get_trip_summary(session)
        assert record is not None
        assert record.destinations == ["SYD", "MEL"]
        assert record.total_documents == 3

    assert get_storage().list() == [
        "activities/zoo_ticket.pdf",
        "flights/QF410_SYD-MEL.pdf",
        "hotels/Hilton_Melbourne.pdf",
    ]
    assert get_storage().get(key="hotels/Hilton_Melbourne.pdf") == HOTEL_TEXT.encode()


def test_rerun_is_idempotent(sample_trip, text_extractor):
    run_ingestion(sample_trip, text_extractor=text_extractor)
    report = run_ingestion(sample_trip, text_extractor=text_extractor)

    assert report.succeeded == 3
    with SessionLocal() as session:
        assert count_documents(session) == 3
        summaries = session.scalar(select(func.count()).select_from(TripSummaryRecord))
        assert summaries == 1
    assert len(get_storage().list()) == 3


def test_folder_hint_overrides_content(write_pdf, trip_folder, text_extractor):
    write_pdf("Insurance/hertz.pdf", "Hertz car hire confirmation")
    write_pdf("Receipts/hertz.pdf", "Hertz car hire confirmation")

    report = run_ingestion(trip_folder, text_extractor=text_extractor)

    assert sorted(r.category.value for r in report.results) == ["car_rental", "insurance"]
    assert get_storage().list() == ["car_rental/hertz.pdf", "insurance/hertz.pdf"]


def test_discovery_skips_hidden_and_non_pdf_files(write_pdf, trip_folder):
    write_pdf("b.PDF", "")
    write_pdf("a.pdf", "")
    write_pdf(".hidden.pdf", "")
    write_pdf(".cache/c.pdf", "")
    write_pdf("notes.txt", "")
    write_pdf("Flights/d.pdf", "")

    found = collect_pdfs(trip_folder)

    assert [f.filename for f in found] == ["d.pdf", "a.pdf", "b.PDF"]
    assert [f.folder_hint for f in found] == ["Flights", None, None]


def test_text_extraction_failure_still_stores_document(write_pdf, trip_folder):
    write_pdf("notes.pdf", "unreadable")

    def broken_extractor(body: bytes) -> str:
        raise ValueError("not a pdf")

    report = run_ingestion(trip_folder, text_extractor=broken_extractor)

    assert report.succeeded == 1
    assert report.results[0].category == Category.MISC
    with SessionLocal() as session:
        doc = session.scalar(select(TravelDocument))
        assert doc.raw_text == ""
        assert doc.title == "notes"


def test_upload_failure_skips_only_that_file(sample_trip, text_extractor, tmp_path):
    class FlakyStorage(LocalObjectStorage):
        def put(self, *, key, body, content_type=None):
            if key.startswith("hotels/"):
                raise StorageError("bucket unavailable")
            return super().put(key=key, body=body, content_type=content_type)

    report = run_ingestion(
        sample_trip,
        text_extractor=text_extractor,
        storage=FlakyStorage(tmp_path / "flaky"),
    )

    assert report.succeeded == 2
    assert [f.filename for f in report.failures] == ["Hilton_Melbourne.pdf"]
    assert "bucket unavailable" in report.failures[0].error
    assert report.summary.total_hotels == 0
    assert report.summary.total_documents == 2
    with SessionLocal() as session:
        assert count_documents(session) == 2


def test_raw_text_is_truncated(write_pdf, trip_folder, text_extractor, monkeypatch):
    from trip_vault.core.config import settings

    monkeypatch.setattr(settings, "raw_text_limit", 10)
    write_pdf("notes.pdf", "0123456789abcdef")

    run_ingestion(trip_folder, text_extractor=text_extractor)

    with SessionLocal() as session:
        assert session.scalar(select(TravelDocument.raw_text)) == "0123456789"


def test_missing_source_folder_is_fatal(tmp_path, text_extractor):
    with pytest.raises(SourceFolderError):
        run_ingestion(tmp_path / "missing", text_extractor=text_extractor)


def test_reclassify_replaces_previous_documents(sample_trip, text_extractor):
    run_ingestion(sample_trip, text_extractor=text_extractor)
    (sample_trip / "zoo_ticket.pdf").unlink()
    (sample_trip / "Activities").mkdir()
    hotel = sample_trip / "Hilton_Melbourne.pdf"
    hotel.rename(sample_trip / "Activities" / hotel.name)

    report = run_reclassify(sample_trip, text_extractor=text_extractor)

    assert report.mode == "reclassify"
    assert report.cleared_documents == 3
    assert report.cleared_objects == 3
    assert report.succeeded == 2
    with SessionLocal() as session:
        docs = {d.filename: d.category for d in list_documents(session)}
    assert docs == {
        "QF410_SYD-MEL.pdf": Category.FLIGHTS,
        "Hilton_Melbourne.pdf": Category.ACTIVITIES,
    }
    assert get_storage().list() == [
        "activities/Hilton_Melbourne.pdf",
        "flights/QF410_SYD-MEL.pdf",
    ]
    assert report.summary.total_activities == 1
    assert report.summary.total_hotels == 0


def test_reclassify_aborts_when_bulk_delete_fails(sample_trip, text_extractor, tmp_path):
    class BrokenDeleteStorage(LocalObjectStorage):
        puts_after_failure = 0
        failed = False

        def put(self, *, key, body, content_type=None):
            if self.failed:
                self.puts_after_failure += 1
            return super().put(key=key, body=body, content_type=content_type)

        def delete_many(self, *, keys):
            self.failed = True
            raise StorageError("delete denied")

    storage = BrokenDeleteStorage(tmp_path / "store")
    run_ingestion(sample_trip, text_extractor=text_extractor, storage=storage)
    with SessionLocal() as session:
        before = sorted((d.filename, d.storage_path) for d in list_documents(session))

    with pytest.raises(ReclassifyAbortedError):
        run_reclassify(sample_trip, text_extractor=text_extractor, storage=storage)

    assert storage.puts_after_failure == 0
    assert len(storage.list()) == 3
    with SessionLocal() as session:
        after = sorted((d.filename, d.storage_path) for d in list_documents(session))
    assert after == before


def test_reclassify_checks_folder_before_deleting(sample_trip, text_extractor, tmp_path):
    run_ingestion(sample_trip, text_extractor=text_extractor)

    with pytest.raises(SourceFolderError):
        run_reclassify(tmp_path / "missing", text_extractor=text_extractor)

    with SessionLocal() as session:
        assert count_documents(session) == 3


def test_database_failure_skips_only_that_file(sample_trip, text_extractor, monkeypatch):
    real_upsert = ingestion_service.upsert_document

    def flaky_upsert(session, result, **kwargs):
        if result.filename == "Hilton_Melbourne.pdf":
            raise SQLAlchemyError("database is locked")
        return real_upsert(session, result, **kwargs)

    monkeypatch.setattr(ingestion_service, "upsert_document", flaky_upsert)

    report = run_ingestion(sample_trip, text_extractor=text_extractor)

    assert report.discovered == 3
    assert report.succeeded == 2
    assert [f.filename for f in report.failures] == ["Hilton_Melbourne.pdf"]
    assert report.failures[0].error.startswith("upsert failed")
    assert report.failures[0].storage_path == "hotels/Hilton_Melbourne.pdf"
    assert report.summary.total_hotels == 0
    assert report.summary.total_documents == 2
    assert report.summary_saved is True
    with SessionLocal() as session:
        assert sorted(d.filename for d in list_documents(session)) == [
            "QF410_SYD-MEL.pdf",
            "zoo_ticket.pdf",
        ]


def test_summary_save_failure_keeps_run_results(sample_trip, text_extractor, monkeypatch):
    def broken_save(session, summary):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(ingestion_service, "save_trip_summary", broken_save)

    report = run_ingestion(sample_trip, text_extractor=text_extractor)

    assert report.succeeded == 3
    assert report.failures == []
    assert report.summary_saved is False
    assert report.summary.total_documents == 3
    with SessionLocal() as session:
        assert count_documents(session) == 3
        assert get_trip_summary(session) is None


def test_unreadable_subfolder_is_skipped(write_pdf, trip_folder, text_extractor, monkeypatch):
    write_pdf("Locked/secret.pdf", "")
    write_pdf("Flights/QF410.pdf", "")
    real_iterdir = Path.iterdir

    def guarded_iterdir(self):
        if self.name == "Locked":
            raise PermissionError(13, "Permission denied", str(self))
        return real_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", guarded_iterdir)

    report = run_ingestion(trip_folder, text_extractor=text_extractor)

    assert report.discovered == 1
    assert [r.filename for r in report.results] == ["QF410.pdf"]
    assert report.failures == []


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="directory permissions are not enforced for root",
)
def test_discovery_skips_folder_without_permissions(write_pdf, trip_folder):
    write_pdf("Locked/secret.pdf", "")
    write_pdf("a.pdf", "")
    locked = trip_folder / "Locked"
    locked.chmod(0o000)
    try:
        found = collect_pdfs(trip_folder)
    finally:
        locked.chmod(0o755)

    assert [f.filename for f in found] == ["a.pdf"]


def test_reclassify_warns_on_same_filename_in_two_folders(
    write_pdf, trip_folder, text_extractor, monkeypatch
):
    write_pdf("Flights/itinerary.pdf", "Itinerary")
    write_pdf("Hotels/itinerary.pdf", "Itinerary")
    events = []

    def record_event(logger, event, **fields):
        events.append((event, fields))

    monkeypatch.setattr(documents_service, "log_event", record_event)

    report = run_reclassify(trip_folder, text_extractor=text_extractor)

    assert report.succeeded == 2
    moved = [fields for event, fields in events if event == "documents.upsert.moved"]
    assert len(moved) == 1
    assert moved[0]["previous_storage_path"] == "flights/itinerary.pdf"
    assert moved[0]["storage_path"] == "hotels/itinerary.pdf"
    with SessionLocal() as session:
        docs = list_documents(session)
    assert [(d.filename, d.storage_path) for d in docs] == [
        ("itinerary.pdf", "hotels/itinerary.pdf")
    ]
    assert get_storage().list() == ["flights/itinerary.pdf", "hotels/itinerary.pdf"]
