from __future__ import annotations

from typing import Any

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trip_vault.core.models import Base, Timestamped, UUIDPrimaryKey
from trip_vault.modules.classification.categories import Category


class TravelDocument(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "documents"

    filename: Mapped[str] = mapped_column(String(512), index=True)
    storage_path: Mapped[str] = mapped_column(String(1024), unique=True)
    category: Mapped[Category] = mapped_column(
        Enum(Category, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        index=True,
    )
    title: Mapped[str | None] = mapped_column(String(150), nullable=True)
    raw_text: Mapped[str] = mapped_column(Text, default="")
    # "metadata" is reserved on declarative classes.
    doc_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", default=dict)
    event_date: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
