"""Database session management for the settlement audit log"""

from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from moneyflow_gateway.config import settings


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Build the engine on first use"""
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
        pool_recycle=3600,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
