"""
Entity core -- versioned entities as plain data plus capability functions.

Responsibility:
    ``VersionedEntity`` is an immutable record (identity, version, timestamps,
    external ids, metadata, attributes).  Identity, versioning and audit
    behaviour live in free functions over it rather than in a class
    hierarchy, so any entity type gets the same lifecycle.

Architecture position:
    Kernel > Domain -- pure functional core.  Time comes from an injected
    Clock; ids from uuid4.

Invariants enforced:
    - version starts at 1 and increases by exactly 1 per successful update
    - an update must present the current version; a mismatch raises
      ConcurrencyConflictError and nothing is merged
    - updated_at >= created_at (kept on update, flagged by validate_integrity)
    - external_ids never contain duplicates

Failure modes:
    - ConcurrencyConflictError from update_entity / archive_entity
    - validate_integrity never raises; it returns every problem found
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Mapping
from uuid import uuid4

from refuse_kernel.domain.clock import Clock
from refuse_kernel.domain.dtos import ValidationError, ValidationResult
from refuse_kernel.domain.schemas import get_schema
from refuse_kernel.domain.validation import validate_required_fields
from refuse_kernel.exceptions import ConcurrencyConflictError
from refuse_kernel.utils.hashing import short_hash

# Keys in an update payload that are not entity attributes
_IDENTITY_KEYS = frozenset({"id", "entity_type", "version", "created_at", "updated_at"})
_ENVELOPE_KEYS = frozenset({"metadata", "external_ids"})

STATE_ACTIVE = "active"
STATE_ARCHIVED = "archived"


@dataclass(frozen=True)
class VersionedEntity:
    """
    Immutable versioned entity.

    ``metadata`` and ``attributes`` are treated as read-only; every lifecycle
    function returns a new instance with copied mappings.
    """

    id: str
    entity_type: str
    created_at: datetime
    updated_at: datetime
    version: int = 1
    external_ids: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        """Attribute lookup falling back to the entity envelope."""
        if name in self.attributes:
            return self.attributes[name]
        return getattr(self, name, default) if name in _FIELD_NAMES else default


_FIELD_NAMES = frozenset(
    {"id", "entity_type", "created_at", "updated_at", "version", "external_ids", "metadata"}
)


def unique_ids(ids: Iterable[Any]) -> tuple[str, ...]:
    """De-duplicate while keeping first-seen order; blanks dropped."""
    seen: dict[str, None] = {}
    for value in ids:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            seen.setdefault(text, None)
    return tuple(seen)


def new_entity(
    entity_type: str,
    attributes: Mapping[str, Any] | None = None,
    *,
    clock: Clock,
    id: str | None = None,
    external_ids: Iterable[Any] = (),
    metadata: Mapping[str, Any] | None = None,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
    version: int | None = None,
) -> VersionedEntity:
    now = clock.now()
    created = created_at or now
    return VersionedEntity(
        id=id or str(uuid4()),
        entity_type=entity_type,
        created_at=created,
        updated_at=updated_at or created,
        version=version if version is not None else 1,
        external_ids=unique_ids(external_ids),
        metadata=copy.deepcopy(dict(metadata or {})),
        attributes=copy.deepcopy(dict(attributes or {})),
    )


# ---------------------------------------------------------------------------
# Versioned
# ---------------------------------------------------------------------------


def update_entity(
    entity: VersionedEntity,
    updates: Mapping[str, Any],
    expected_version: int,
    *,
    clock: Clock,
    modified_by: str | None = None,
) -> VersionedEntity:
    """
    Return a new instance with ``updates`` applied and version + 1.

    ``metadata`` in updates is merged, ``external_ids`` replaces the set,
    identity keys are ignored and everything else merges into attributes.
    """
    if expected_version != entity.version:
        raise ConcurrencyConflictError(
            entity.entity_type, entity.id, expected_version, entity.version
        )

    attributes = copy.deepcopy(entity.attributes)
    for key, value in updates.items():
        if key in _IDENTITY_KEYS or key in _ENVELOPE_KEYS:
            continue
        attributes[key] = copy.deepcopy(value)

    metadata = copy.deepcopy(entity.metadata)
    metadata.update(copy.deepcopy(dict(updates.get("metadata") or {})))
    metadata["previous_version"] = entity.version
    metadata["last_modified_by"] = modified_by or "system"

    external_ids = entity.external_ids
    if "external_ids" in updates:
        external_ids = unique_ids(updates["external_ids"] or ())

    return replace(
        entity,
        attributes=attributes,
        metadata=metadata,
        external_ids=external_ids,
        version=entity.version + 1,
        updated_at=max(clock.now(), entity.created_at),
    )


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def validate_integrity(
    entity: VersionedEntity,
    required_fields: Iterable[str] | None = None,
) -> ValidationResult:
    """Check identity, timestamps, version and required attributes; never raises."""
    errors: list[ValidationError] = []
    if not entity.id or not str(entity.id).strip():
        errors.append(ValidationError("MISSING_ID", "Entity id is required", "id"))
    if not isinstance(entity.created_at, datetime):
        errors.append(
            ValidationError("MISSING_TIMESTAMP", "created_at is required", "created_at")
        )
    if not isinstance(entity.updated_at, datetime):
        errors.append(
            ValidationError("MISSING_TIMESTAMP", "updated_at is required", "updated_at")
        )
    if (
        isinstance(entity.created_at, datetime)
        and isinstance(entity.updated_at, datetime)
        and entity.updated_at < entity.created_at
    ):
        errors.append(
            ValidationError(
                "TIMESTAMP_ORDER",
                "updated_at cannot be before created_at",
                "updated_at",
                {
                    "created_at": entity.created_at.isoformat(),
                    "updated_at": entity.updated_at.isoformat(),
                },
            )
        )
    if not isinstance(entity.version, int) or entity.version < 1:
        errors.append(
            ValidationError(
                "INVALID_VERSION",
                "version must be an integer >= 1",
                "version",
                {"version": entity.version},
            )
        )

    if required_fields is None:
        schema = get_schema(entity.entity_type)
        required_fields = schema.required_fields if schema else ()
    errors.extend(validate_required_fields(entity.attributes, required_fields))
    return ValidationResult.from_errors(errors)


def calculate_entity_hash(entity: VersionedEntity) -> str:
    """16-hex-char checksum of identity, version, timestamps and attributes."""
    return short_hash(
        {
            "id": entity.id,
            "version": entity.version,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
            "attributes": entity.attributes,
        }
    )


def clone_entity(entity: VersionedEntity, *, clock: Clock) -> VersionedEntity:
    """Copy under a fresh identity at version 1."""
    now = clock.now()
    metadata = copy.deepcopy(entity.metadata)
    for key in ("previous_version", "last_modified_by"):
        metadata.pop(key, None)
    metadata["cloned_from"] = entity.id
    metadata["clone_timestamp"] = now.isoformat()
    return VersionedEntity(
        id=str(uuid4()),
        entity_type=entity.entity_type,
        created_at=now,
        updated_at=now,
        version=1,
        external_ids=entity.external_ids,
        metadata=metadata,
        attributes=copy.deepcopy(entity.attributes),
    )


# ---------------------------------------------------------------------------
# Lifecycle state
# ---------------------------------------------------------------------------


def archive_entity(
    entity: VersionedEntity,
    reason: str | None = None,
    *,
    clock: Clock,
    expected_version: int | None = None,
    archived_by: str | None = None,
) -> VersionedEntity:
    """Soft-archive through a regular versioned update."""
    return update_entity(
        entity,
        {
            "metadata": {
                "archived": True,
                "archived_at": clock.now().isoformat(),
                "archived_reason": reason or "Manual archive",
            }
        },
        entity.version if expected_version is None else expected_version,
        clock=clock,
        modified_by=archived_by,
    )


def is_archived(entity: VersionedEntity) -> bool:
    return bool(entity.metadata.get("archived"))


def current_state(entity: VersionedEntity) -> str:
    return STATE_ARCHIVED if is_archived(entity) else STATE_ACTIVE


def is_in_state(entity: VersionedEntity, state: str) -> bool:
    return current_state(entity) == state


# ---------------------------------------------------------------------------
# Document form
# ---------------------------------------------------------------------------


def entity_to_dict(entity: VersionedEntity, *, include_hash: bool = False) -> dict[str, Any]:
    """Flat document: envelope fields plus attributes at the top level."""
    doc: dict[str, Any] = copy.deepcopy(entity.attributes)
    doc.update(
        {
            "id": entity.id,
            "entity_type": entity.entity_type,
            "external_ids": list(entity.external_ids),
            "metadata": copy.deepcopy(entity.metadata),
            "created_at": entity.created_at.isoformat(),
            "updated_at": entity.updated_at.isoformat(),
            "version": entity.version,
        }
    )
    if include_hash:
        doc["_integrity_hash"] = calculate_entity_hash(entity)
    return doc


def entity_from_dict(data: Mapping[str, Any]) -> VersionedEntity:
    """Inverse of ``entity_to_dict``; ISO timestamp strings are parsed."""
    attributes = {
        k: copy.deepcopy(v)
        for k, v in data.items()
        if k not in _FIELD_NAMES and k != "_integrity_hash"
    }
    return VersionedEntity(
        id=str(data["id"]),
        entity_type=str(data["entity_type"]),
        created_at=_parse_datetime(data["created_at"]),
        updated_at=_parse_datetime(data["updated_at"]),
        version=int(data.get("version", 1)),
        external_ids=unique_ids(data.get("external_ids") or ()),
        metadata=copy.deepcopy(dict(data.get("metadata") or {})),
        attributes=attributes,
    )


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
