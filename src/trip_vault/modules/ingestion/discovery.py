from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from trip_vault.core.logging import get_logger, log_event

logger = get_logger(__name__)


@dataclass(frozen=True)
class DiscoveredFile:
    path: Path
    folder_hint: str | None

    @property
    def filename(self) -> str:
        return self.path.name


def collect_pdfs(folder: Path) -> list[DiscoveredFile]:
    """Recursively list PDFs under folder in a stable, sorted order.

    Raises OSError when the folder itself cannot be read; unreadable
    subdirectories are logged and skipped.
    """
    root = Path(folder)
    found: list[DiscoveredFile] = []
    _walk(root, root=root, found=found)
    return found


def _walk(directory: Path, *, root: Path, found: list[DiscoveredFile]) -> None:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            try:
                _walk(entry, root=root, found=found)
            except OSError as e:
                log_event(
                    logger,
                    "ingestion.discovery.skip",
                    level=logging.WARNING,
                    path=str(entry),
                    error_type=type(e).__name__,
                    error=str(e),
                )
            continue
        if entry.suffix.lower() == ".pdf":
            hint = directory.name if directory != root else None
            found.append(DiscoveredFile(path=entry, folder_hint=hint))
