from __future__ import annotations

from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase

# Shared SQLAlchemy declarative base for all models.


class Base(DeclarativeBase):
    """Base for SQLAlchemy models."""

    pass


def new_id() -> str:
    """Return a fresh opaque identifier for primary keys."""

    return str(uuid4())


__all__ = ["Base", "new_id"]
