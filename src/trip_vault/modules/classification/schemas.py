from __future__ import annotations

from dataclasses import dataclass, field

from trip_vault.modules.classification.categories import Category


@dataclass(frozen=True)
class DocumentResult:
    filename: str
    category: Category
    title: str
    event_date: str | None
    metadata: dict = field(default_factory=dict)

    @property
    def passengers(self) -> list[str]:
        return list(self.metadata.get("passengers") or [])
