"""
SQLAlchemy 2.0 async DeclarativeBase for LP Market.

All models inherit from this Base.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all LP Market database models."""
    pass


def new_uuid() -> str:
    """Client-side UUID so rows get ids on any backend (Postgres or SQLite)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
