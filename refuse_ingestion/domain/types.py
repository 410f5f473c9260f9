"""
refuse_ingestion.domain.types -- Pure frozen dataclasses for legacy ingestion.

ZERO I/O.  Imports only from refuse_kernel/domain/.

Contents:
    - FieldMapping: one source-field -> canonical-field rule
    - TransformWarning / TransformationResult: per-record outcome
    - BatchTransformationResult: per-batch outcome with aggregate statistics
    - TransformationMetrics: per-entity-type running counters
    - Connection/sync DTOs for legacy connectors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

TransformFn = Callable[[Any, dict[str, Any]], Any]


# =============================================================================
# Field mapping
# =============================================================================


@dataclass(frozen=True)
class FieldMapping:
    """Single field mapping: legacy source field -> canonical target field."""

    source: str  # Legacy field name (e.g., CSV column CUSTOMER_NAME)
    target: str  # Canonical field name (e.g., name)
    required: bool = False
    transform: TransformFn | None = None  # (value, whole record) -> value
    default_value: Any = None  # Used only when the source is absent and not required
    transform_name: str | None = None  # Registered name, for reporting


# =============================================================================
# Per-record result
# =============================================================================


@dataclass(frozen=True)
class TransformWarning:
    """Recovered, non-fatal problem found while transforming a record."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class TransformationResult:
    """Outcome of transforming one legacy record."""

    success: bool
    entity_type: str
    data: dict[str, Any] | None = None  # Canonical payload (success only)
    error: str | None = None  # Failure reason (failure only)
    error_code: str | None = None
    transformation_time_ms: float = 0.0
    fields_mapped: int = 0
    fields_preserved: int = 0
    warnings: tuple[TransformWarning, ...] = ()
    mapped_data: dict[str, Any] | None = None  # After field mapping, before structure
    unrecognized_fields: dict[str, Any] = field(default_factory=dict)
    record_index: int = 0

    @property
    def warning_messages(self) -> list[str]:
        return [w.message for w in self.warnings]


# =============================================================================
# Per-batch result
# =============================================================================


@dataclass(frozen=True)
class BatchTransformationResult:
    """
    Outcome of a batch; ``results[i]`` describes input record ``i``.

    Rates are percentages, times milliseconds, throughput records/second.
    """

    entity_type: str
    results: tuple[TransformationResult, ...]
    total_records: int
    successful_transformations: int
    failed_transformations: int
    success_rate: float
    total_transformation_time_ms: float
    average_transformation_time_ms: float
    transformations_per_second: float
    peak_transformations_per_second: float
    warnings: tuple[str, ...] = ()  # Distinct, first-seen order
    errors: tuple[str, ...] = ()  # Distinct failure reasons

    @property
    def successful_data(self) -> list[dict[str, Any]]:
        return [r.data for r in self.results if r.success and r.data is not None]

    @property
    def failed_results(self) -> list[TransformationResult]:
        return [r for r in self.results if not r.success]


# =============================================================================
# Metrics
# =============================================================================


@dataclass(frozen=True)
class TransformationMetrics:
    """Running counters for one entity type; only ever grow until cleared."""

    entity_type: str
    total_transformations: int = 0
    successful_transformations: int = 0
    failed_transformations: int = 0
    total_transformation_time_ms: float = 0.0

    @property
    def average_transformation_time_ms(self) -> float:
        if self.total_transformations == 0:
            return 0.0
        return self.total_transformation_time_ms / self.total_transformations

    @property
    def success_rate(self) -> float:
        if self.total_transformations == 0:
            return 0.0
        return self.successful_transformations / self.total_transformations * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "total_transformations": self.total_transformations,
            "successful_transformations": self.successful_transformations,
            "failed_transformations": self.failed_transformations,
            "total_transformation_time_ms": self.total_transformation_time_ms,
            "average_transformation_time_ms": self.average_transformation_time_ms,
        }


# =============================================================================
# Legacy connector DTOs
# =============================================================================


@dataclass(frozen=True)
class ConnectionOptions:
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    api_key: str | None = None
    database: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SyncOptions:
    entity_types: tuple[str, ...] = ()  # Empty means every collection offered
    date_from: datetime | None = None
    date_to: datetime | None = None
    incremental: bool = False
    last_sync_token: str | None = None
    batch_size: int | None = None
    entity_type: str | None = None  # For connectors returning a bare record list


@dataclass(frozen=True)
class ConnectorCapabilities:
    connection_id: str
    capabilities: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConnectionResult:
    system_name: str
    success: bool
    connection_id: str | None = None
    capabilities: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class SyncOperationResult:
    operation: str  # "connect", "fetch", "transform:<entity_type>"
    success: bool
    record_count: int = 0
    duration_ms: float = 0.0
    error: str | None = None


@dataclass(frozen=True)
class SyncResult:
    """Sync outcome; success only when every operation succeeded."""

    system_name: str
    success: bool
    operations: tuple[SyncOperationResult, ...]
    batches: dict[str, BatchTransformationResult] = field(default_factory=dict)
    total_duration_ms: float = 0.0
    synced_at: datetime | None = None
