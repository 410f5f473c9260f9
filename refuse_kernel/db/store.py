"""
Module: refuse_kernel.db.store
Responsibility: EntityStore implementation over SQLAlchemy 2.0.
Architecture position: Kernel > DB.  Implements the storage protocol from
    refuse_kernel.storage; EntityManager never sees ORM objects.

Invariants enforced:
    - compare_and_swap is a single ``UPDATE ... WHERE id = :id AND
      version = :expected``; a zero rowcount means the caller lost the race
      (or the row is gone) and nothing was written.
    - A store scoped to an entity type only reads, swaps and deletes rows
      of that type, even when the database is shared.

Failure modes:
    - ConcurrencyConflictError when the conditional UPDATE matches no row but
      the entity exists.
    - EntityNotFoundError when the entity does not exist.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager, nullcontext
from typing import Generator

from sqlalchemy import create_engine, delete, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from refuse_kernel.db.base import Base
from refuse_kernel.db.models import EntityRecordModel
from refuse_kernel.domain.entity import VersionedEntity
from refuse_kernel.exceptions import ConcurrencyConflictError, EntityNotFoundError
from refuse_kernel.logging_config import get_logger

logger = get_logger("db.store")

DEFAULT_DATABASE_URL = "sqlite://"


def create_store_engine(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """Engine for ``database_url``; in-memory SQLite shares one connection."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, echo=echo)


class SqlAlchemyEntityStore:
    """Entity store persisted through SQLAlchemy; tables created on init."""

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        entity_type: str = "entity",
        database_url: str = DEFAULT_DATABASE_URL,
    ) -> None:
        self.entity_type = entity_type
        self._engine = engine or create_store_engine(database_url)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        # A StaticPool connection must not be used by two threads at once
        self._connection_lock = (
            threading.Lock() if isinstance(self._engine.pool, StaticPool) else None
        )
        Base.metadata.create_all(self._engine)

    @contextmanager
    def _session_scope(self) -> Generator[Session, None, None]:
        guard = self._connection_lock if self._connection_lock is not None else nullcontext()
        with guard:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                logger.warning("transaction_rolled_back", exc_info=True)
                raise
            finally:
                session.close()

    def _type_filter(self, stmt):
        if self.entity_type == "entity":
            return stmt
        return stmt.where(EntityRecordModel.entity_type == self.entity_type)

    def get(self, entity_id: str) -> VersionedEntity | None:
        with self._session_scope() as session:
            row = session.scalar(
                self._type_filter(select(EntityRecordModel)).where(
                    EntityRecordModel.id == entity_id
                )
            )
            return row.to_entity() if row is not None else None

    def put(self, entity: VersionedEntity) -> None:
        with self._session_scope() as session:
            session.merge(EntityRecordModel.from_entity(entity))

    def compare_and_swap(
        self,
        entity_id: str,
        expected_version: int,
        entity: VersionedEntity,
    ) -> VersionedEntity:
        with self._session_scope() as session:
            result = session.execute(
                self._type_filter(update(EntityRecordModel))
                .where(
                    EntityRecordModel.id == entity_id,
                    EntityRecordModel.version == expected_version,
                )
                .values(
                    version=entity.version,
                    updated_at=entity.updated_at,
                    external_ids=list(entity.external_ids),
                    entity_metadata=dict(entity.metadata),
                    attributes=dict(entity.attributes),
                )
            )
            if result.rowcount == 1:
                return entity

            current_version = session.scalar(
                self._type_filter(select(EntityRecordModel.version)).where(
                    EntityRecordModel.id == entity_id
                )
            )
        if current_version is None:
            raise EntityNotFoundError(self.entity_type, entity_id)
        logger.info(
            "version_conflict",
            extra={
                "entity_id": entity_id,
                "expected_version": expected_version,
                "current_version": current_version,
            },
        )
        raise ConcurrencyConflictError(
            entity.entity_type, entity_id, expected_version, current_version
        )

    def delete(self, entity_id: str) -> bool:
        with self._session_scope() as session:
            result = session.execute(
                self._type_filter(delete(EntityRecordModel)).where(
                    EntityRecordModel.id == entity_id
                )
            )
            return result.rowcount > 0

    def values(self) -> list[VersionedEntity]:
        with self._session_scope() as session:
            stmt = self._type_filter(select(EntityRecordModel)).order_by(
                EntityRecordModel.created_at, EntityRecordModel.id
            )
            return [row.to_entity() for row in session.scalars(stmt)]

    def count(self) -> int:
        with self._session_scope() as session:
            stmt = self._type_filter(select(func.count()).select_from(EntityRecordModel))
            return int(session.scalar(stmt) or 0)

    def clear(self) -> None:
        with self._session_scope() as session:
            session.execute(self._type_filter(delete(EntityRecordModel)))
