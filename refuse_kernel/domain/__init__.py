"""
Pure domain layer.

Entities, validation and audit events as immutable data plus pure
functions.  No ORM, no I/O; time is injected through a Clock.
"""

from refuse_kernel.domain.audit import AuditEvent, generate_audit_event
from refuse_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from refuse_kernel.domain.dtos import ValidationError, ValidationResult
from refuse_kernel.domain.entity import (
    VersionedEntity,
    archive_entity,
    calculate_entity_hash,
    clone_entity,
    current_state,
    entity_from_dict,
    entity_to_dict,
    is_archived,
    new_entity,
    update_entity,
    validate_integrity,
)
from refuse_kernel.domain.validation import EntityValidator

__all__ = [
    "AuditEvent",
    "Clock",
    "DeterministicClock",
    "EntityValidator",
    "SystemClock",
    "ValidationError",
    "ValidationResult",
    "VersionedEntity",
    "archive_entity",
    "calculate_entity_hash",
    "clone_entity",
    "current_state",
    "entity_from_dict",
    "entity_to_dict",
    "generate_audit_event",
    "is_archived",
    "new_entity",
    "update_entity",
    "validate_integrity",
]
