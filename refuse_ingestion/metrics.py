"""
Transformation metrics registry.

One registry value is created by the caller and passed to the engine, so
tests and tenants get isolated counters.  Counters only grow; ``clear`` is
the sole reset.  No internal locking: a registry has a single writer.

The registry serialises to a plain dict so the command-line tool can keep a
running snapshot on disk between invocations.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from refuse_ingestion.domain.types import TransformationMetrics


class MetricsRegistry:
    def __init__(self) -> None:
        self._metrics: dict[str, TransformationMetrics] = {}

    def record(self, entity_type: str, success: bool, elapsed_ms: float) -> TransformationMetrics:
        current = self._metrics.get(entity_type) or TransformationMetrics(entity_type)
        updated = replace(
            current,
            total_transformations=current.total_transformations + 1,
            successful_transformations=current.successful_transformations + (1 if success else 0),
            failed_transformations=current.failed_transformations + (0 if success else 1),
            total_transformation_time_ms=current.total_transformation_time_ms + elapsed_ms,
        )
        self._metrics[entity_type] = updated
        return updated

    def get(self, entity_type: str) -> TransformationMetrics | None:
        return self._metrics.get(entity_type)

    def snapshot(self) -> dict[str, TransformationMetrics]:
        return dict(self._metrics)

    def entity_types(self) -> list[str]:
        return sorted(self._metrics)

    def clear(self) -> None:
        self._metrics.clear()

    def merge(self, other: MetricsRegistry) -> None:
        """Add ``other``'s counters into this registry."""
        for entity_type, theirs in other.snapshot().items():
            mine = self._metrics.get(entity_type) or TransformationMetrics(entity_type)
            self._metrics[entity_type] = replace(
                mine,
                total_transformations=mine.total_transformations + theirs.total_transformations,
                successful_transformations=mine.successful_transformations
                + theirs.successful_transformations,
                failed_transformations=mine.failed_transformations + theirs.failed_transformations,
                total_transformation_time_ms=mine.total_transformation_time_ms
                + theirs.total_transformation_time_ms,
            )

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {name: m.to_dict() for name, m in sorted(self._metrics.items())}

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, Any]]) -> MetricsRegistry:
        registry = cls()
        for entity_type, values in data.items():
            registry._metrics[entity_type] = TransformationMetrics(
                entity_type=entity_type,
                total_transformations=int(values.get("total_transformations", 0)),
                successful_transformations=int(values.get("successful_transformations", 0)),
                failed_transformations=int(values.get("failed_transformations", 0)),
                total_transformation_time_ms=float(values.get("total_transformation_time_ms", 0.0)),
            )
        return registry
