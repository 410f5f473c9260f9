"""
EntityManager -- validated, versioned CRUD over an EntityStore.

Responsibility:
    Owns the lifecycle of one entity type: validate-then-store on create,
    optimistic-concurrency update, soft archive, clone, delete, listing and
    exact-match search.  Every state change is recorded as an AuditEvent.

Architecture position:
    Kernel > Services.  Depends on the domain layer and the storage
    protocol; the concrete store is injected (in-memory by default).

Invariants enforced:
    - create stores nothing when validation fails; EntityValidationError
      carries every error.
    - update checks the presented version against the store atomically
      (store compare-and-swap); exactly one of several racing writers with
      the same expected version succeeds.
    - archived entities are hidden from list/find unless asked for.

Failure modes:
    - EntityValidationError on invalid create/update payloads.
    - EntityNotFoundError on update/archive/clone of an unknown id.
    - ConcurrencyConflictError on a stale expected_version.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping

from refuse_kernel.domain.audit import (
    EVENT_ARCHIVED,
    EVENT_CLONED,
    EVENT_CREATED,
    EVENT_DELETED,
    EVENT_UPDATED,
    AuditEvent,
    generate_audit_event,
)
from refuse_kernel.domain.clock import Clock
from refuse_kernel.domain.entity import (
    VersionedEntity,
    archive_entity,
    clone_entity,
    entity_to_dict,
    is_archived,
    update_entity,
)
from refuse_kernel.domain.validation import EntityValidator
from refuse_kernel.exceptions import (
    ConcurrencyConflictError,
    EntityNotFoundError,
    EntityValidationError,
)
from refuse_kernel.logging_config import LogContext, get_logger
from refuse_kernel.services.entity_factory import EntityFactory
from refuse_kernel.storage import EntityStore, InMemoryEntityStore

logger = get_logger("services.entity_manager")

_NON_ATTRIBUTE_KEYS = frozenset(
    {"id", "entity_type", "external_ids", "metadata", "created_at", "updated_at", "version"}
)


def _attribute_view(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in _NON_ATTRIBUTE_KEYS}


class EntityManager:
    """CRUD, search and audit trail for one entity type."""

    def __init__(
        self,
        factory: EntityFactory,
        validator: EntityValidator | None = None,
        store: EntityStore | None = None,
        clock: Clock | None = None,
    ):
        self._factory = factory
        self._validator = validator
        self._store = store or InMemoryEntityStore(factory.entity_type)
        self._clock = clock or factory.clock
        self._audit: dict[str, list[AuditEvent]] = {}
        self._audit_lock = threading.Lock()

    @property
    def entity_type(self) -> str:
        return self._factory.entity_type

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _record(self, event: AuditEvent) -> None:
        with self._audit_lock:
            self._audit.setdefault(event.entity_id, []).append(event)

    def audit_trail(self, entity_id: str) -> tuple[AuditEvent, ...]:
        with self._audit_lock:
            return tuple(self._audit.get(entity_id, ()))

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    def _validate_creation(self, data: Mapping[str, Any]) -> None:
        if self._validator is None:
            return
        result = self._validator.validate_creation(_attribute_view(data))
        if not result.is_valid:
            raise EntityValidationError(self.entity_type, result.errors)

    def _store_new(self, entity: VersionedEntity, changed_by: str | None) -> VersionedEntity:
        if self._store.get(entity.id) is not None:
            logger.warning(
                "entity_overwritten",
                extra={"entity_type": self.entity_type, "entity_id": entity.id},
            )
        self._store.put(entity)
        self._record(
            generate_audit_event(
                entity,
                EVENT_CREATED,
                entity_to_dict(entity),
                clock=self._clock,
                changed_by=changed_by,
            )
        )
        logger.info(
            "entity_created",
            extra={"entity_type": self.entity_type, "entity_id": entity.id},
        )
        return entity

    def create(self, data: Mapping[str, Any], *, created_by: str | None = None) -> VersionedEntity:
        """Validate, build and store; a duplicate id overwrites (last writer wins)."""
        self._validate_creation(data)
        return self._store_new(self._factory.create(data), created_by)

    def create_from_external(
        self,
        data: Mapping[str, Any],
        system_name: str,
    ) -> VersionedEntity:
        with LogContext.bind(system_name=system_name):
            self._validate_creation(data)
            return self._store_new(
                self._factory.create_from_external(data, system_name), system_name
            )

    def get(self, entity_id: str) -> VersionedEntity | None:
        return self._store.get(entity_id)

    def _require(self, entity_id: str) -> VersionedEntity:
        entity = self._store.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.entity_type, entity_id)
        return entity

    # ------------------------------------------------------------------
    # Versioned mutations
    # ------------------------------------------------------------------

    def _log_conflict(self, exc: ConcurrencyConflictError) -> None:
        logger.info(
            "entity_version_conflict",
            extra={
                "entity_type": self.entity_type,
                "entity_id": exc.entity_id,
                "expected_version": exc.expected_version,
                "current_version": exc.current_version,
            },
        )

    def update(
        self,
        entity_id: str,
        updates: Mapping[str, Any],
        expected_version: int,
        *,
        modified_by: str | None = None,
    ) -> VersionedEntity:
        current = self._require(entity_id)
        if self._validator is not None:
            result = self._validator.validate_update(_attribute_view(updates))
            if not result.is_valid:
                raise EntityValidationError(self.entity_type, result.errors)

        try:
            updated = update_entity(
                current,
                updates,
                expected_version,
                clock=self._clock,
                modified_by=modified_by,
            )
            stored = self._store.compare_and_swap(entity_id, expected_version, updated)
        except ConcurrencyConflictError as exc:
            self._log_conflict(exc)
            raise
        self._record(
            generate_audit_event(
                stored,
                EVENT_UPDATED,
                dict(updates),
                clock=self._clock,
                changed_by=modified_by,
                previous_version=expected_version,
            )
        )
        logger.info(
            "entity_updated",
            extra={
                "entity_type": self.entity_type,
                "entity_id": entity_id,
                "version": stored.version,
            },
        )
        return stored

    def archive(
        self,
        entity_id: str,
        reason: str | None = None,
        *,
        expected_version: int | None = None,
        archived_by: str | None = None,
    ) -> VersionedEntity:
        current = self._require(entity_id)
        version = current.version if expected_version is None else expected_version
        try:
            archived = archive_entity(
                current,
                reason,
                clock=self._clock,
                expected_version=version,
                archived_by=archived_by,
            )
            stored = self._store.compare_and_swap(entity_id, version, archived)
        except ConcurrencyConflictError as exc:
            self._log_conflict(exc)
            raise
        self._record(
            generate_audit_event(
                stored,
                EVENT_ARCHIVED,
                {"reason": stored.metadata.get("archived_reason")},
                clock=self._clock,
                changed_by=archived_by,
                previous_version=version,
            )
        )
        logger.info(
            "entity_archived",
            extra={"entity_type": self.entity_type, "entity_id": entity_id},
        )
        return stored

    def clone(self, entity_id: str, *, cloned_by: str | None = None) -> VersionedEntity:
        source = self._require(entity_id)
        copy = clone_entity(source, clock=self._clock)
        self._store.put(copy)
        self._record(
            generate_audit_event(
                copy,
                EVENT_CLONED,
                {"cloned_from": source.id},
                clock=self._clock,
                changed_by=cloned_by,
            )
        )
        return copy

    def delete(self, entity_id: str, *, deleted_by: str | None = None) -> bool:
        """Remove from the store; deleting an unknown id returns False."""
        entity = self._store.get(entity_id)
        removed = self._store.delete(entity_id)
        if removed and entity is not None:
            self._record(
                generate_audit_event(
                    entity,
                    EVENT_DELETED,
                    clock=self._clock,
                    changed_by=deleted_by,
                    previous_version=entity.version,
                )
            )
            logger.info(
                "entity_deleted",
                extra={"entity_type": self.entity_type, "entity_id": entity_id},
            )
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self, *, include_archived: bool = False) -> list[VersionedEntity]:
        entities = self._store.values()
        if include_archived:
            return entities
        return [e for e in entities if not is_archived(e)]

    def find(
        self,
        criteria: Mapping[str, Any],
        *,
        include_archived: bool = False,
    ) -> list[VersionedEntity]:
        """Exact-match AND over attributes and envelope fields (linear scan)."""
        _missing = object()
        matches: list[VersionedEntity] = []
        for entity in self.list(include_archived=include_archived):
            if all(entity.get(key, _missing) == value for key, value in criteria.items()):
                matches.append(entity)
        return matches

    def count(self) -> int:
        return self._store.count()

    def clear(self) -> None:
        self._store.clear()
        with self._audit_lock:
            self._audit.clear()
