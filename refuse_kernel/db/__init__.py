"""Database layer - declarative base, entity model and SQLAlchemy store."""

from refuse_kernel.db.base import Base, UTCDateTime
from refuse_kernel.db.models import EntityRecordModel
from refuse_kernel.db.store import (
    DEFAULT_DATABASE_URL,
    SqlAlchemyEntityStore,
    create_store_engine,
)

__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "EntityRecordModel",
    "SqlAlchemyEntityStore",
    "UTCDateTime",
    "create_store_engine",
]
