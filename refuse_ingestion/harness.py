"""
Mapping test harness: check a mapping setup against sample data.

Runs the full transformation pipeline on sample rows plus the canonical
validator for the entity type, and returns a per-row report.  Works on a
fork of the engine, so the caller's metrics are never touched and nothing
is written anywhere.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from refuse_kernel.domain.dtos import ValidationError
from refuse_kernel.domain.schemas import REFERENCE_VALIDATORS
from refuse_kernel.domain.validation import EntityValidator

from refuse_ingestion.domain.types import TransformWarning
from refuse_ingestion.engine import TransformationEngine
from refuse_ingestion.metrics import MetricsRegistry


@dataclass(frozen=True)
class MappingTestRow:
    """Result for one sample row."""

    source_row: int  # 1-indexed
    success: bool
    raw_data: Any
    mapped_data: dict[str, Any] | None = None
    canonical_data: dict[str, Any] | None = None
    error: str | None = None
    validation_errors: tuple[ValidationError, ...] = ()
    warnings: tuple[TransformWarning, ...] = ()


@dataclass(frozen=True)
class MappingTestReport:
    entity_type: str
    sample_count: int
    success_count: int
    error_count: int
    rows: tuple[MappingTestRow, ...] = ()
    summary_errors: tuple[str, ...] = ()
    summary_warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error_count == 0


def run_mapping_test(
    engine: TransformationEngine,
    entity_type: str,
    sample_rows: Sequence[Any],
    validator: EntityValidator | None = None,
) -> MappingTestReport:
    """
    Raises:
        ConfigurationError: entity type has no mappings or transformer.
    """
    validator = validator or REFERENCE_VALIDATORS.get(entity_type)
    batch = engine.fork(metrics=MetricsRegistry()).transform_batch(sample_rows, entity_type)

    rows: list[MappingTestRow] = []
    all_errors: set[str] = set()
    all_warnings: set[str] = set()
    success_count = 0
    for raw, result in zip(sample_rows, batch.results):
        validation: tuple[ValidationError, ...] = ()
        if result.success and validator is not None and result.data is not None:
            validation = validator.validate_creation(result.data).errors
        if result.error:
            all_errors.add(result.error)
        for e in validation:
            all_errors.add(f"{e.code}: {e.message}")
        for w in result.warnings:
            all_warnings.add(w.message)

        success = result.success and not validation
        if success:
            success_count += 1
        rows.append(
            MappingTestRow(
                source_row=result.record_index + 1,
                success=success,
                raw_data=raw,
                mapped_data=result.mapped_data,
                canonical_data=result.data,
                error=result.error,
                validation_errors=validation,
                warnings=result.warnings,
            )
        )

    return MappingTestReport(
        entity_type=entity_type,
        sample_count=len(rows),
        success_count=success_count,
        error_count=len(rows) - success_count,
        rows=tuple(rows),
        summary_errors=tuple(sorted(all_errors)),
        summary_warnings=tuple(sorted(all_warnings)),
    )


def render_mapping_test_report(report: MappingTestReport) -> str:
    lines = [
        f"Mapping check: {report.entity_type}",
        f"Samples: {report.sample_count}  passed: {report.success_count}  failed: {report.error_count}",
    ]
    for row in report.rows:
        if row.success:
            continue
        reasons = [row.error] if row.error else []
        reasons += [e.message for e in row.validation_errors]
        lines.append(f"  row {row.source_row}: {'; '.join(reasons)}")
    if report.summary_warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {w}" for w in report.summary_warnings)
    return "\n".join(lines) + "\n"
