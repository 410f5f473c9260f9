"""
Entity store boundary.

Responsibility:
    ``EntityStore`` is the persistence seam used by EntityManager.  The
    in-memory implementation is the default; ``refuse_kernel.db`` provides a
    SQLAlchemy-backed one with the same contract.

Invariants enforced:
    - compare_and_swap replaces an entity only when the stored version equals
      ``expected_version``; the check and the replacement are one atomic step,
      so of two writers presenting the same version exactly one succeeds.
    - put overwrites by id (last writer wins).

Failure modes:
    - ConcurrencyConflictError from compare_and_swap on a stale version.
    - EntityNotFoundError from compare_and_swap on an unknown id.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from refuse_kernel.domain.entity import VersionedEntity
from refuse_kernel.exceptions import ConcurrencyConflictError, EntityNotFoundError


@runtime_checkable
class EntityStore(Protocol):
    """Keyed entity storage with an atomic version compare-and-swap."""

    def get(self, entity_id: str) -> VersionedEntity | None: ...

    def put(self, entity: VersionedEntity) -> None: ...

    def compare_and_swap(
        self,
        entity_id: str,
        expected_version: int,
        entity: VersionedEntity,
    ) -> VersionedEntity: ...

    def delete(self, entity_id: str) -> bool: ...

    def values(self) -> list[VersionedEntity]: ...

    def count(self) -> int: ...

    def clear(self) -> None: ...


class InMemoryEntityStore:
    """Dict-backed store; a lock serialises every mutation."""

    def __init__(self, entity_type: str = "entity") -> None:
        self.entity_type = entity_type
        self._entities: dict[str, VersionedEntity] = {}
        self._lock = threading.Lock()

    def get(self, entity_id: str) -> VersionedEntity | None:
        return self._entities.get(entity_id)

    def put(self, entity: VersionedEntity) -> None:
        with self._lock:
            self._entities[entity.id] = entity

    def compare_and_swap(
        self,
        entity_id: str,
        expected_version: int,
        entity: VersionedEntity,
    ) -> VersionedEntity:
        with self._lock:
            current = self._entities.get(entity_id)
            if current is None:
                raise EntityNotFoundError(self.entity_type, entity_id)
            if current.version != expected_version:
                raise ConcurrencyConflictError(
                    current.entity_type, entity_id, expected_version, current.version
                )
            self._entities[entity_id] = entity
            return entity

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            return self._entities.pop(entity_id, None) is not None

    def values(self) -> list[VersionedEntity]:
        with self._lock:
            return list(self._entities.values())

    def count(self) -> int:
        return len(self._entities)

    def clear(self) -> None:
        with self._lock:
            self._entities.clear()
