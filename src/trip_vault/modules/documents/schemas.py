from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from trip_vault.modules.classification.categories import Category


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    filename: str
    storage_path: str
    category: Category
    title: str | None
    metadata: dict = Field(default_factory=dict, validation_alias="doc_metadata")
    event_date: str | None
    created_at: datetime
    updated_at: datetime
