"""
Module: refuse_kernel.db.base
Responsibility: Declarative base and portable column types for the ORM
    models backing SqlAlchemyEntityStore.
Architecture position: Kernel > DB.  Lowest-level import target within the
    db package; MUST NOT import from services/ or ingestion packages.

Invariants enforced:
    - Timestamps round-trip timezone-aware (UTC) even on SQLite, which
      stores DATETIME without an offset.
"""

from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as UTC.

    Guarantees:
        - process_bind_param: aware datetime -> UTC (naive values are
          assumed to already be UTC).
        - process_result_value: naive value from the driver -> UTC-aware.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for the entity store models.

    Guarantees:
        - datetime maps to UTCDateTime -- always timezone-aware.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        int: Integer,
        str: String(255),
    }
