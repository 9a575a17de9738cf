from __future__ import annotations

import logging
from typing import Literal

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from trip_vault.core.logging import get_logger, log_event
from trip_vault.modules.classification.categories import Category
from trip_vault.modules.classification.schemas import DocumentResult
from trip_vault.modules.documents.models import TravelDocument

logger = get_logger(__name__)

ConflictKey = Literal["storage_path", "filename"]


def upsert_document(
    session: Session,
    result: DocumentResult,
    *,
    storage_path: str,
    raw_text: str,
    conflict_key: ConflictKey = "storage_path",
) -> TravelDocument:
    if conflict_key == "storage_path":
        condition = TravelDocument.storage_path == storage_path
    else:
        condition = TravelDocument.filename == result.filename
    doc = session.scalar(
        select(TravelDocument).where(condition).order_by(TravelDocument.created_at)
    )
    if not doc:
        doc = TravelDocument(filename=result.filename, storage_path=storage_path)
    elif doc.storage_path != storage_path:
        # Filename matching can pair two same-named files from different folders;
        # the earlier object stays in storage without a record.
        log_event(
            logger,
            "documents.upsert.moved",
            level=logging.WARNING,
            filename=result.filename,
            previous_storage_path=doc.storage_path,
            storage_path=storage_path,
        )
    doc.filename = result.filename
    doc.storage_path = storage_path
    doc.category = result.category
    doc.title = result.title
    doc.raw_text = raw_text
    doc.doc_metadata = dict(result.metadata)
    doc.event_date = result.event_date
    session.add(doc)
    session.commit()
    session.refresh(doc)
    return doc


def delete_all_documents(session: Session, *, commit: bool = True) -> int:
    deleted = session.execute(delete(TravelDocument)).rowcount or 0
    if commit:
        session.commit()
    return deleted


def count_documents(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(TravelDocument)) or 0


def list_documents(
    session: Session,
    *,
    category: Category | str | None = None,
    search: str | None = None,
) -> list[TravelDocument]:
    stmt = select(TravelDocument)
    if category and category != "all":
        stmt = stmt.where(TravelDocument.category == Category(category))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(TravelDocument.title.ilike(pattern), TravelDocument.filename.ilike(pattern))
        )
    stmt = stmt.order_by(
        TravelDocument.event_date.is_(None),
        TravelDocument.event_date,
        TravelDocument.created_at,
    )
    return list(session.scalars(stmt))


def to_result(doc: TravelDocument) -> DocumentResult:
    return DocumentResult(
        filename=doc.filename,
        category=Category(doc.category),
        title=doc.title or doc.filename,
        event_date=doc.event_date,
        metadata=dict(doc.doc_metadata or {}),
    )
