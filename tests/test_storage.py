from __future__ import annotations

import pytest

from trip_vault.core.storage import (
    LocalObjectStorage,
    StorageError,
    get_storage,
    sanitize_storage_filename,
    storage_path_for,
)


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("Flight (QF410) & Hotel, Sydney's.pdf", "Flight_QF410_Hotel_Sydneys.pdf"),
        ("Hilton   Melbourne.pdf", "Hilton_Melbourne.pdf"),
        ("Zoo | Tickets.pdf", "Zoo_Tickets.pdf"),
        ("Café #1.pdf", "Caf-_-1.pdf"),
        ("a##b.pdf", "a-b.pdf"),
    ],
)
def test_sanitize_storage_filename(filename, expected):
    assert sanitize_storage_filename(filename) == expected


def test_storage_path_for_prefixes_category():
    assert storage_path_for("hotels", "Hilton Melbourne.pdf") == "hotels/Hilton_Melbourne.pdf"


def test_local_storage_put_get_list_and_delete(tmp_path):
    storage = LocalObjectStorage(tmp_path / "bucket")
    stored = storage.put(key="flights/a.pdf", body=b"one", content_type="application/pdf")
    storage.put(key="hotels/b.pdf", body=b"two")
    storage.put(key="flights/a.pdf", body=b"three")

    assert stored.byte_size == 3
    assert storage.get(key="flights/a.pdf") == b"three"
    assert storage.list() == ["flights/a.pdf", "hotels/b.pdf"]
    assert storage.list(prefix="hotels/") == ["hotels/b.pdf"]

    storage.delete_many(keys=storage.list())
    assert storage.list() == []
    with pytest.raises(StorageError):
        storage.get(key="flights/a.pdf")


def test_get_storage_is_cached_and_uses_bucket_directory():
    storage = get_storage()
    assert storage is get_storage()
    storage.put(key="misc/x.pdf", body=b"x")
    assert storage.list() == ["misc/x.pdf"]
