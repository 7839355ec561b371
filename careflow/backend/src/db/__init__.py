"""Database session management utilities."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from .base import Base
from .session import FinancialSessionLocal, SessionLocal, engine as _engine


@contextmanager
def get_session() -> Iterator[Session]:
    """Context manager yielding a SQLAlchemy session."""

    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_session_dependency() -> Iterator[Session]:
    """FastAPI dependency wrapping :func:`get_session`."""

    with get_session() as session:
        yield session


def get_financial_session_dependency() -> Iterator[Session]:
    """FastAPI dependency yielding a session for invoice writes."""

    db = FinancialSessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_engine():
    """Return the configured SQLAlchemy engine."""

    return _engine


def _scope(factory: sessionmaker) -> Iterator[Session]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope for background workers."""

    yield from _scope(SessionLocal)


@contextmanager
def financial_session_scope() -> Iterator[Session]:
    """Transactional scope bound to the financial isolation level."""

    yield from _scope(FinancialSessionLocal)


__all__ = [
    "Base",
    "financial_session_scope",
    "get_engine",
    "get_financial_session_dependency",
    "get_session",
    "get_session_dependency",
    "session_scope",
]
