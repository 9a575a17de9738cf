from __future__ import annotations

import logging
import time
import uuid
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from sqlalchemy.orm import Session

from trip_vault.core.config import settings
from trip_vault.core.db import SessionLocal
from trip_vault.core.logging import (
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_run_context,
    set_run_context,
)
from trip_vault.core.storage import ObjectStorage, get_storage, storage_path_for
from trip_vault.modules.classification.categories import Category
from trip_vault.modules.classification.schemas import DocumentResult
from trip_vault.modules.classification.service import build_document_result
from trip_vault.modules.documents.service import delete_all_documents, upsert_document
from trip_vault.modules.ingestion.discovery import DiscoveredFile, collect_pdfs
from trip_vault.modules.ingestion.pdf import extract_pdf_text
from trip_vault.modules.trips.aggregator import TripSummary, aggregate
from trip_vault.modules.trips.service import save_trip_summary

logger = get_logger(__name__)

IngestionMode = Literal["run", "reclassify"]
TextExtractor = Callable[[bytes], str]
SessionFactory = Callable[[], Session]

PDF_CONTENT_TYPE = "application/pdf"


class IngestionError(RuntimeError):
    pass


class SourceFolderError(IngestionError):
    pass


class ReclassifyAbortedError(IngestionError):
    pass


@dataclass(frozen=True)
class FileOutcome:
    path: Path
    folder_hint: str | None
    result: DocumentResult | None = None
    storage_path: str | None = None
    error: str | None = None

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def ok(self) -> bool:
        return self.result is not None


ProgressCallback = Callable[[FileOutcome], None]


@dataclass
class IngestionReport:
    mode: IngestionMode
    folder: Path
    run_id: str
    discovered: int = 0
    results: list[DocumentResult] = field(default_factory=list)
    failures: list[FileOutcome] = field(default_factory=list)
    summary: TripSummary | None = None
    summary_saved: bool = False
    cleared_documents: int = 0
    cleared_objects: int = 0

    @property
    def succeeded(self) -> int:
        return len(self.results)

    def category_counts(self) -> dict[str, int]:
        counts = Counter(result.category for result in self.results)
        return {category.value: counts[category] for category in Category if counts[category]}


def discover_files(folder: Path) -> list[DiscoveredFile]:
    folder = Path(folder)
    if not folder.is_dir():
        raise SourceFolderError(f"Source folder not found: {folder}")
    try:
        return collect_pdfs(folder)
    except OSError as e:
        raise SourceFolderError(f"Could not read source folder {folder}: {e}") from e


def _extract_text(file: DiscoveredFile, body: bytes, text_extractor: TextExtractor) -> str:
    try:
        return text_extractor(body) or ""
    except Exception as e:  # noqa: BLE001
        log_event(
            logger,
            "ingestion.text.failure",
            level=logging.WARNING,
            filename=file.filename,
            error_type=type(e).__name__,
            error=str(e),
        )
        return ""


def process_file(
    file: DiscoveredFile,
    *,
    session: Session,
    storage: ObjectStorage,
    text_extractor: TextExtractor,
    mode: IngestionMode,
) -> FileOutcome:
    start = time.monotonic()
    log_event(
        logger,
        "ingestion.file.start",
        filename=file.filename,
        folder_hint=file.folder_hint,
    )

    try:
        body = file.path.read_bytes()
    except OSError as e:
        log_exception(logger, "ingestion.file.failure", filename=file.filename, stage="read")
        return FileOutcome(path=file.path, folder_hint=file.folder_hint, error=str(e))

    text = _extract_text(file, body, text_extractor)
    result = build_document_result(file.filename, text, file.folder_hint)
    storage_path = storage_path_for(result.category.value, file.filename)

    stage = "upload"
    try:
        storage.put(key=storage_path, body=body, content_type=PDF_CONTENT_TYPE)
        stage = "upsert"
        upsert_document(
            session,
            result,
            storage_path=storage_path,
            raw_text=text[: settings.raw_text_limit],
            conflict_key="filename" if mode == "reclassify" else "storage_path",
        )
    except Exception as e:  # noqa: BLE001
        session.rollback()
        log_exception(
            logger,
            "ingestion.file.failure",
            filename=file.filename,
            storage_path=storage_path,
            stage=stage,
            duration_ms=monotonic_ms(start),
        )
        return FileOutcome(
            path=file.path,
            folder_hint=file.folder_hint,
            storage_path=storage_path,
            error=f"{stage} failed: {e}",
        )

    log_event(
        logger,
        "ingestion.file.success",
        filename=file.filename,
        category=result.category.value,
        event_date=result.event_date,
        storage_path=storage_path,
        duration_ms=monotonic_ms(start),
    )
    return FileOutcome(
        path=file.path,
        folder_hint=file.folder_hint,
        result=result,
        storage_path=storage_path,
    )


def clear_existing_documents(session: Session, storage: ObjectStorage) -> tuple[int, int]:
    """Delete every document record and stored object, or nothing at all.

    The record deletion is only committed once the object store is empty.
    """
    try:
        deleted_documents = delete_all_documents(session, commit=False)
        keys = storage.list(prefix="")
        if keys:
            storage.delete_many(keys=keys)
        session.commit()
    except Exception as e:
        session.rollback()
        log_exception(logger, "ingestion.reclassify.failure")
        raise ReclassifyAbortedError(f"Could not clear existing documents: {e}") from e

    log_event(
        logger,
        "ingestion.reclassify.cleared",
        deleted_documents=deleted_documents,
        deleted_objects=len(keys),
    )
    return deleted_documents, len(keys)


def run_ingestion(
    folder: Path,
    *,
    mode: IngestionMode = "run",
    text_extractor: TextExtractor = extract_pdf_text,
    storage: ObjectStorage | None = None,
    session_factory: SessionFactory = SessionLocal,
    progress: ProgressCallback | None = None,
) -> IngestionReport:
    folder = Path(folder)
    run_id = uuid.uuid4().hex
    tokens = set_run_context(run_id=run_id, mode=mode)
    start = time.monotonic()
    try:
        files = discover_files(folder)
        storage = storage or get_storage()
        report = IngestionReport(mode=mode, folder=folder, run_id=run_id, discovered=len(files))
        log_event(logger, "ingestion.run.start", folder=str(folder), discovered=len(files))

        with session_factory() as session:
            if mode == "reclassify":
                report.cleared_documents, report.cleared_objects = clear_existing_documents(
                    session, storage
                )

            for file in files:
                outcome = process_file(
                    file,
                    session=session,
                    storage=storage,
                    text_extractor=text_extractor,
                    mode=mode,
                )
                if outcome.result is not None:
                    report.results.append(outcome.result)
                else:
                    report.failures.append(outcome)
                if progress:
                    progress(outcome)

            report.summary = aggregate(report.results)
            try:
                save_trip_summary(session, report.summary)
                report.summary_saved = True
            except Exception:  # noqa: BLE001
                session.rollback()
                log_exception(logger, "ingestion.summary.failure")

        log_event(
            logger,
            "ingestion.run.finish",
            folder=str(folder),
            discovered=report.discovered,
            succeeded=report.succeeded,
            failed=len(report.failures),
            summary_saved=report.summary_saved,
            duration_ms=monotonic_ms(start),
        )
        return report
    finally:
        reset_run_context(tokens)


def run_reclassify(
    folder: Path,
    *,
    text_extractor: TextExtractor = extract_pdf_text,
    storage: ObjectStorage | None = None,
    session_factory: SessionFactory = SessionLocal,
    progress: ProgressCallback | None = None,
) -> IngestionReport:
    return run_ingestion(
        folder,
        mode="reclassify",
        text_extractor=text_extractor,
        storage=storage,
        session_factory=session_factory,
        progress=progress,
    )
