"""SQLAlchemy engine and session factory configuration."""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import sessionmaker

from careflow.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[4]


def _normalize_database_url(raw_url: str) -> URL:
    """Return an absolute :class:`~sqlalchemy.engine.URL` for SQLite databases."""

    url = make_url(raw_url)
    if not url.drivername.startswith("sqlite"):
        return url

    database = url.database or ""
    if database in {"", ":memory:"}:
        return url

    db_path = Path(database)
    if db_path.is_absolute():
        resolved = db_path
    else:
        resolved = PROJECT_ROOT / db_path

    resolved = resolved.resolve()
    if resolved != db_path:
        LOGGER.info(
            "database_path_normalized",
            original=str(db_path),
            resolved=str(resolved),
        )

    return url.set(database=str(resolved))


_settings = get_settings()
_database_url = _normalize_database_url(_settings.database_url)
engine = create_engine(
    _database_url,
    pool_pre_ping=True,
    future=True,
)
# Invoice header and line-item writes run on connections pinned to the
# strictest configured isolation level.
financial_engine = engine.execution_options(
    isolation_level=_settings.financial_isolation_level
)
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)
FinancialSessionLocal = sessionmaker(
    bind=financial_engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

LOGGER.info(
    "database_engine_initialized",
    url=str(_database_url),
    financial_isolation_level=_settings.financial_isolation_level,
)

__all__ = ["engine", "financial_engine", "SessionLocal", "FinancialSessionLocal"]
