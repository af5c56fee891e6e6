"""
SQLAlchemy declarative base and session factory.

All ORM models inherit from Base. DATABASE_URL selects the database;
tests build their own in-memory SQLite engine instead.
"""

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def create_engine_from_env(database_url: Optional[str] = None) -> Engine:
    """
    Create an engine from DATABASE_URL.

    Raises:
        RuntimeError: If no database URL is configured
    """
    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is required")
    return create_engine(url, pool_pre_ping=True)


def get_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to engine. Sessions do not expire on commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)
