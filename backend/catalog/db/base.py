"""Declarative base shared by all ORM models."""

from sqlalchemy import Engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def init_db(engine: Engine) -> None:
    """Create any missing tables (local development and tests)."""
    # Models must be imported so they register on Base.metadata
    import catalog.db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
