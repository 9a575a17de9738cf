from __future__ import annotations

from trip_vault.modules.classification.classifier import classify
from trip_vault.modules.classification.dates import extract_event_date
from trip_vault.modules.classification.metadata import extract_metadata
from trip_vault.modules.classification.schemas import DocumentResult
from trip_vault.modules.classification.titles import generate_title


def build_document_result(
    filename: str, text: str | None, folder_hint: str | None = None
) -> DocumentResult:
    """Classify one document and extract everything derived from its text.

    Pure: the result depends only on the arguments.
    """
    category = classify(filename, text, folder_hint)
    metadata = extract_metadata(text, category, filename)
    return DocumentResult(
        filename=filename,
        category=category,
        title=generate_title(filename, category, metadata),
        event_date=extract_event_date(text, filename),
        metadata=metadata,
    )
