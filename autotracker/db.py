"""Database engine and session utilities."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from autotracker.config import get_settings

Base = declarative_base()


@lru_cache()
def get_engine(database_url: str | None = None) -> Engine:
    """Create or return a cached SQLAlchemy engine."""

    url = database_url or get_settings().database_url
    return create_engine(url, future=True, echo=False)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to *engine*."""

    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
