"""
Audit events for entity lifecycle transitions.

Every create, update, archive, clone and delete performed through the
EntityManager produces one ``AuditEvent``.  Events are plain immutable data;
the manager keeps them in append order per entity.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping
from uuid import uuid4

from refuse_kernel.domain.clock import Clock
from refuse_kernel.domain.entity import VersionedEntity

EVENT_CREATED = "created"
EVENT_UPDATED = "updated"
EVENT_ARCHIVED = "archived"
EVENT_CLONED = "cloned"
EVENT_DELETED = "deleted"


@dataclass(frozen=True)
class AuditEvent:
    id: str
    entity_type: str
    entity_id: str
    event_type: str
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "data": copy.deepcopy(self.data),
            "metadata": copy.deepcopy(self.metadata),
        }


def generate_audit_event(
    entity: VersionedEntity,
    event_type: str,
    changes: Mapping[str, Any] | None = None,
    *,
    clock: Clock,
    changed_by: str | None = None,
    previous_version: int | None = None,
) -> AuditEvent:
    """Describe a transition that produced ``entity``."""
    return AuditEvent(
        id=str(uuid4()),
        entity_type=entity.entity_type,
        entity_id=entity.id,
        event_type=event_type,
        timestamp=clock.now(),
        data=copy.deepcopy(dict(changes or {})),
        metadata={
            "previous_version": previous_version,
            "new_version": entity.version,
            "changed_by": changed_by or "system",
        },
    )
