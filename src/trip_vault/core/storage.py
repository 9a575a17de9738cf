from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from trip_vault.core.config import require_settings, settings
from trip_vault.core.logging import get_logger, log_event, log_exception, monotonic_ms

logger = get_logger(__name__)


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredObject:
    key: str
    byte_size: int
    content_type: str | None = None


def sanitize_storage_filename(filename: str) -> str:
    name = re.sub(r"[|,&'()]", "", filename)
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"[^A-Za-z0-9._\-/]", "-", name)
    return re.sub(r"-{2,}", "-", name)


def storage_path_for(category: str, filename: str) -> str:
    return f"{category}/{sanitize_storage_filename(filename)}"


class ObjectStorage:
    def put(
        self, *, key: str, body: bytes, content_type: str | None = None
    ) -> StoredObject:  # pragma: no cover
        raise NotImplementedError

    def get(self, *, key: str) -> bytes:  # pragma: no cover
        raise NotImplementedError

    def delete(self, *, key: str) -> None:  # pragma: no cover
        raise NotImplementedError

    def list(self, *, prefix: str = "") -> list[str]:  # pragma: no cover
        raise NotImplementedError

    def delete_many(self, *, keys: list[str]) -> None:
        for key in keys:
            self.delete(key=key)


class LocalObjectStorage(ObjectStorage):
    def __init__(self, root: Path):
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    def put(self, *, key: str, body: bytes, content_type: str | None = None) -> StoredObject:
        start = time.monotonic()
        path = self._root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
        except Exception:
            log_exception(
                logger,
                "storage.put.failure",
                backend="local",
                storage_key=key,
                byte_size=len(body),
            )
            raise
        log_event(
            logger,
            "storage.put.success",
            backend="local",
            storage_key=key,
            byte_size=len(body),
            duration_ms=monotonic_ms(start),
        )
        return StoredObject(key=key, byte_size=len(body), content_type=content_type)

    def get(self, *, key: str) -> bytes:
        path = self._root / key
        if not path.exists():
            raise StorageError(f"Object not found: {key}")
        return path.read_bytes()

    def delete(self, *, key: str) -> None:
        path = self._root / key
        if path.exists():
            try:
                path.unlink()
            except Exception:
                log_exception(
                    logger,
                    "storage.delete.failure",
                    backend="local",
                    storage_key=key,
                )
                raise

    def list(self, *, prefix: str = "") -> list[str]:
        keys: list[str] = []
        for path in sorted(self._root.rglob("*")):
            if not path.is_file():
                continue
            key = path.relative_to(self._root).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return keys


class S3ObjectStorage(ObjectStorage):
    def __init__(self, *, bucket: str) -> None:
        region = settings.s3_region
        if not region or region.lower() == "auto":
            region = "us-east-1"

        session = boto3.session.Session(
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            region_name=region,
        )
        endpoint_url = settings.s3_endpoint_url or None

        from botocore.config import Config

        config = Config(
            s3={"addressing_style": "virtual"},
            retries={"max_attempts": 3, "mode": "adaptive"},
            connect_timeout=30,
            read_timeout=60,
        )
        self._client = session.client("s3", endpoint_url=endpoint_url, config=config)
        self._bucket = bucket
        self._ensure_bucket()

    def _retry_delay_s(self, attempt: int) -> float:
        # attempt=1 => 0.25s, attempt=2 => 0.5s, attempt=3 => 1.0s, ...
        return min(3.0, 0.25 * (2 ** (attempt - 1)))

    def _should_retry_error(self, error: Exception) -> bool:
        if isinstance(error, ClientError):
            code = (error.response.get("Error") or {}).get("Code")
            return code in {
                "RequestCanceled",
                "RequestTimeout",
                "Throttling",
                "ThrottlingException",
                "SlowDown",
                "InternalError",
                "ServiceUnavailable",
            }
        return isinstance(error, BotoCoreError)

    def _ensure_bucket(self) -> None:
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError:
            self._client.create_bucket(Bucket=self._bucket)

    def put(self, *, key: str, body: bytes, content_type: str | None = None) -> StoredObject:
        start = time.monotonic()
        extra: dict[str, str] = {}
        if content_type:
            extra["ContentType"] = content_type
        max_attempts = 5
        for attempt in range(1, max_attempts + 1):
            try:
                self._client.put_object(Bucket=self._bucket, Key=key, Body=body, **extra)
                break
            except Exception as e:  # noqa: BLE001
                if attempt < max_attempts and self._should_retry_error(e):
                    delay_s = self._retry_delay_s(attempt)
                    error_code = None
                    if isinstance(e, ClientError):
                        error_code = (e.response.get("Error") or {}).get("Code")
                    log_event(
                        logger,
                        "storage.put.retry",
                        backend="s3",
                        storage_key=key,
                        byte_size=len(body),
                        attempt=attempt,
                        delay_s=delay_s,
                        error_code=error_code,
                        error_type=type(e).__name__,
                    )
                    time.sleep(delay_s)
                    continue
                log_exception(
                    logger,
                    "storage.put.failure",
                    backend="s3",
                    storage_key=key,
                    byte_size=len(body),
                    attempt=attempt,
                )
                raise
        log_event(
            logger,
            "storage.put.success",
            backend="s3",
            storage_key=key,
            byte_size=len(body),
            duration_ms=monotonic_ms(start),
        )
        return StoredObject(key=key, byte_size=len(body), content_type=content_type)

    def get(self, *, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            raise StorageError(f"Object not found: {key}") from e
        return resp["Body"].read()

    def delete(self, *, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except Exception:
            log_exception(
                logger,
                "storage.delete.failure",
                backend="s3",
                storage_key=key,
            )
            raise

    def list(self, *, prefix: str = "") -> list[str]:
        keys: list[str] = []
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            for item in page.get("Contents") or []:
                keys.append(item["Key"])
        return keys

    def delete_many(self, *, keys: list[str]) -> None:
        # DeleteObjects accepts at most 1000 keys per request.
        for i in range(0, len(keys), 1000):
            chunk = keys[i : i + 1000]
            resp = self._client.delete_objects(
                Bucket=self._bucket,
                Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
            )
            errors = resp.get("Errors") or []
            if errors:
                first = errors[0]
                log_event(
                    logger,
                    "storage.delete.failure",
                    backend="s3",
                    storage_key=first.get("Key"),
                    error_code=first.get("Code"),
                    failed_count=len(errors),
                )
                raise StorageError(
                    f"Could not delete {len(errors)} object(s), first: {first.get('Key')}"
                )


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    global _storage  # noqa: PLW0603
    if _storage is not None:
        return _storage

    bucket = str(require_settings().storage_bucket)
    if settings.storage_backend == "s3":
        _storage = S3ObjectStorage(bucket=bucket)
    else:
        root = settings.local_storage_path
        if not root.is_absolute():
            root = Path(os.getcwd()) / root
        _storage = LocalObjectStorage(root / bucket)
    return _storage
