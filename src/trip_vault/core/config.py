from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class MissingSettingsError(RuntimeError):
    def __init__(self, names: list[str]):
        self.names = names
        env_names = ", ".join(name.upper() for name in names)
        super().__init__(f"Missing required configuration: {env_names}")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"

    # Both locations are required by the ingestion commands.
    database_url: str | None = None
    storage_bucket: str | None = None

    storage_backend: Literal["local", "s3"] = "local"
    local_storage_path: Path = Path(".local_storage")

    s3_endpoint_url: str | None = None
    s3_region: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None

    raw_text_limit: int = 10_000

    def missing_required(self) -> list[str]:
        missing: list[str] = []
        for name in ("database_url", "storage_bucket"):
            value = getattr(self, name)
            if not value or not str(value).strip():
                missing.append(name)
        return missing


settings = Settings()


def require_settings() -> Settings:
    missing = settings.missing_required()
    if missing:
        raise MissingSettingsError(missing)
    return settings
