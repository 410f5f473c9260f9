"""
EntityFactory -- construct new versioned entities.

Responsibility:
    Assigns identity, timestamps and version 1 to caller data, stamps
    provenance metadata, and supports imports from external systems and
    non-transactional bulk creation.

Architecture position:
    Kernel > Services.  Pure apart from the injected Clock and uuid
    generation; stores nothing.

Failure modes:
    - create_bulk never raises for a bad item; the failure is reported in
      that item's BulkCreateResult and earlier items stay created.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from refuse_kernel.domain.clock import Clock, SystemClock
from refuse_kernel.domain.entity import VersionedEntity, new_entity, unique_ids
from refuse_kernel.exceptions import RefuseKernelError
from refuse_kernel.logging_config import get_logger

logger = get_logger("services.entity_factory")

_ENVELOPE_KEYS = frozenset(
    {"id", "entity_type", "external_ids", "metadata", "created_at", "updated_at", "version"}
)


@dataclass(frozen=True)
class BulkCreateResult:
    index: int
    success: bool
    entity: VersionedEntity | None = None
    error: str | None = None


class EntityFactory:
    """Builds entities of one type."""

    def __init__(self, entity_type: str, clock: Clock | None = None):
        self.entity_type = entity_type
        self._clock = clock or SystemClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    def _build(
        self,
        data: Mapping[str, Any],
        provenance: Mapping[str, Any],
        extra_ids: Iterable[str] = (),
    ) -> VersionedEntity:
        if not isinstance(data, Mapping):
            raise TypeError(f"{self.entity_type} data must be a mapping, got {type(data).__name__}")
        attributes = {k: v for k, v in data.items() if k not in _ENVELOPE_KEYS}
        metadata = dict(data.get("metadata") or {})
        for key, value in provenance.items():
            metadata.setdefault(key, value)
        return new_entity(
            self.entity_type,
            attributes,
            clock=self._clock,
            id=data.get("id") or None,
            external_ids=[*(data.get("external_ids") or ()), *extra_ids],
            metadata=metadata,
        )

    def create(self, data: Mapping[str, Any]) -> VersionedEntity:
        """New entity at version 1; caller metadata wins over provenance."""
        entity = self._build(data, {"created_by": "factory", "source": "api"})
        logger.debug(
            "entity_built",
            extra={"entity_type": self.entity_type, "entity_id": entity.id},
        )
        return entity

    def create_from_external(self, data: Mapping[str, Any], system_name: str) -> VersionedEntity:
        """New entity tagged with the external system it came from."""
        now = self._clock.now()
        entity = self._build(
            data,
            {
                "created_by": "factory",
                "source": "import",
                "imported_from": system_name,
                "import_timestamp": now.isoformat(),
            },
            extra_ids=unique_ids([system_name]),
        )
        logger.debug(
            "entity_imported",
            extra={
                "entity_type": self.entity_type,
                "entity_id": entity.id,
                "imported_from": system_name,
            },
        )
        return entity

    def create_bulk(
        self,
        items: Iterable[Mapping[str, Any]],
        system_name: str | None = None,
    ) -> list[BulkCreateResult]:
        """Create each item independently; item k failing leaves items < k intact."""
        results: list[BulkCreateResult] = []
        for index, item in enumerate(items):
            try:
                if system_name:
                    entity = self.create_from_external(item, system_name)
                else:
                    entity = self.create(item)
            except (RefuseKernelError, TypeError, ValueError) as exc:
                logger.warning(
                    "bulk_item_failed",
                    extra={"entity_type": self.entity_type, "index": index, "error": str(exc)},
                )
                results.append(BulkCreateResult(index=index, success=False, error=str(exc)))
                continue
            results.append(BulkCreateResult(index=index, success=True, entity=entity))
        return results
