from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

# Set env before any trip_vault imports (settings are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.trip_vault_test.db")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", ".tmp_storage_test")
os.environ.setdefault("STORAGE_BUCKET", "trip-vault-test")


@pytest.fixture(autouse=True)
def _reset_db_and_storage() -> None:
    import trip_vault.core.storage as storage_mod
    import trip_vault.models  # noqa: F401
    from trip_vault.core.db import get_engine, reset_engine
    from trip_vault.core.models import Base

    # Reset storage cache and directory
    storage_mod._storage = None
    storage_path = Path(os.environ["LOCAL_STORAGE_PATH"])
    if storage_path.exists():
        shutil.rmtree(storage_path)

    # Reset DB schema
    reset_engine()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield

    reset_engine()


@pytest.fixture
def trip_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "trip"
    folder.mkdir()
    return folder


@pytest.fixture
def write_pdf(trip_folder: Path):
    """Write a stand-in PDF whose bytes are its text, relative to `trip_folder`."""

    def _write(relative: str, text: str) -> Path:
        path = trip_folder / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write


def decode_text(body: bytes) -> str:
    return body.decode("utf-8")


@pytest.fixture
def text_extractor():
    return decode_text
