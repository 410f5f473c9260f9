"""
ORM model for versioned entities.

One row per entity id.  Attributes, metadata and external ids are JSON
columns; ``version`` is the optimistic-concurrency column checked by the
store's conditional UPDATE.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from refuse_kernel.db.base import Base
from refuse_kernel.domain.entity import VersionedEntity, unique_ids


class EntityRecordModel(Base):
    __tablename__ = "entities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    external_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    entity_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (Index("idx_entities_type", "entity_type"),)

    @classmethod
    def from_entity(cls, entity: VersionedEntity) -> "EntityRecordModel":
        return cls(
            id=entity.id,
            entity_type=entity.entity_type,
            version=entity.version,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            external_ids=list(entity.external_ids),
            entity_metadata=dict(entity.metadata),
            attributes=dict(entity.attributes),
        )

    def to_entity(self) -> VersionedEntity:
        return VersionedEntity(
            id=self.id,
            entity_type=self.entity_type,
            created_at=self.created_at,
            updated_at=self.updated_at,
            version=self.version,
            external_ids=unique_ids(self.external_ids or ()),
            metadata=dict(self.entity_metadata or {}),
            attributes=dict(self.attributes or {}),
        )
