from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker

from trip_vault.core.config import require_settings

_engine: Engine | None = None
_sessionmaker: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine  # noqa: PLW0603
    if _engine is not None:
        return _engine

    database_url = str(require_settings().database_url)
    url = make_url(database_url)
    connect_args: dict = {}
    if url.drivername.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    _engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
    return _engine


def SessionLocal() -> Session:  # noqa: N802
    global _sessionmaker  # noqa: PLW0603
    if _sessionmaker is None:
        _sessionmaker = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _sessionmaker()


def init_db() -> None:
    # Registers every model on Base.metadata before creating tables.
    import trip_vault.models  # noqa: F401
    from trip_vault.core.models import Base

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    global _engine, _sessionmaker  # noqa: PLW0603
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessionmaker = None
