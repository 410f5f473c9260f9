"""
TransformationEngine: legacy record -> canonical entity payload.

Per record:
    1. resolve the FieldMappings and structural transformer registered for
       the entity type (missing either -> ConfigurationError, whole call aborts)
    2. apply field mappings (refuse_ingestion.mapping.engine)
    3. structural reshaping (refuse_ingestion.transformers)
    4. stamp identity, external ids, provenance metadata, the verbatim
       bucket of unconsumed legacy fields, timestamps and version
    5. optional canonical validation, then metrics update

Record-level failures (RecordError) are returned on the TransformationResult;
they never propagate.  Any other exception raised by a transformer after
resolution is wrapped in TransformerFailedError and returned the same way;
only ConfigurationError aborts the call.  Batches run strictly in input order, never stop on a
failed record, and result ``i`` always describes input ``i``.
"""

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping
from uuid import uuid4

from refuse_kernel.domain.clock import Clock, SystemClock
from refuse_kernel.domain.schemas import REFERENCE_VALIDATORS
from refuse_kernel.domain.validation import EntityValidator
from refuse_kernel.exceptions import (
    ConfigurationError,
    MalformedRecordError,
    RecordError,
    RecordValidationError,
    TransformerFailedError,
)
from refuse_kernel.logging_config import LogContext, get_logger

from refuse_config.loader import load_field_mapping_document

from refuse_ingestion.adapters import read_records
from refuse_ingestion.domain.types import (
    BatchTransformationResult,
    FieldMapping,
    TransformationMetrics,
    TransformationResult,
)
from refuse_ingestion.mapping.engine import (
    apply_field_mappings,
    compile_field_mappings,
    find_field,
    is_present,
)
from refuse_ingestion.mapping.reference import REFERENCE_MAPPINGS
from refuse_ingestion.metrics import MetricsRegistry
from refuse_ingestion.transformers import (
    StructuralTransformer,
    TransformContext,
    reference_transformers,
)

logger = get_logger("ingestion.engine")

TRANSFORMATION_SOURCE = "legacy-system"
DEFAULT_PROGRESS_INTERVAL = 100

# Legacy keys holding the source system's own identifier
_LEGACY_ID_FIELDS = ("id", "legacy_id")


class TransformationEngine:
    """Registry of mappings/transformers plus the per-record pipeline."""

    def __init__(
        self,
        *,
        metrics: MetricsRegistry | None = None,
        clock: Clock | None = None,
        strict_codes: bool = False,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ):
        self.metrics = metrics if metrics is not None else MetricsRegistry()
        self._clock = clock or SystemClock()
        self.strict_codes = strict_codes
        self.progress_interval = max(1, int(progress_interval))
        self._mappings: dict[str, tuple[FieldMapping, ...]] = {}
        self._transformers: dict[str, StructuralTransformer] = {}
        self._validators: dict[str, EntityValidator] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_mappings(self, entity_type: str, mappings: Iterable[FieldMapping]) -> None:
        self._mappings[entity_type] = tuple(mappings)

    def register_transformer(self, entity_type: str, transformer: StructuralTransformer) -> None:
        self._transformers[entity_type] = transformer

    def register_validator(self, entity_type: str, validator: EntityValidator) -> None:
        self._validators[entity_type] = validator

    def load_field_mappings(self, path: str | Path) -> list[str]:
        """Register every entity type of a mapping document; returns the types loaded."""
        document = load_field_mapping_document(path)
        for entity_type, definitions in document.items():
            self.register_mappings(entity_type, compile_field_mappings(definitions, entity_type))
        logger.info(
            "field_mappings_loaded",
            extra={"path": str(path), "entity_types": sorted(document)},
        )
        return list(document)

    def fork(self, *, metrics: MetricsRegistry | None = None) -> TransformationEngine:
        """Same registrations and settings, separate metrics."""
        clone = TransformationEngine(
            metrics=metrics,
            clock=self._clock,
            strict_codes=self.strict_codes,
            progress_interval=self.progress_interval,
        )
        clone._mappings = dict(self._mappings)
        clone._transformers = dict(self._transformers)
        clone._validators = dict(self._validators)
        return clone

    def mappings_for(self, entity_type: str) -> tuple[FieldMapping, ...]:
        return self._mappings.get(entity_type, ())

    @property
    def entity_types(self) -> list[str]:
        return sorted(set(self._mappings) & set(self._transformers))

    def _resolve(self, entity_type: str) -> tuple[tuple[FieldMapping, ...], StructuralTransformer]:
        mappings = self._mappings.get(entity_type)
        if mappings is None:
            raise ConfigurationError(
                f"No field mappings registered for entity type {entity_type!r}",
                entity_type=entity_type,
            )
        transformer = self._transformers.get(entity_type)
        if transformer is None:
            raise ConfigurationError(
                f"No transformer registered for entity type {entity_type!r}",
                entity_type=entity_type,
            )
        return mappings, transformer

    # ------------------------------------------------------------------
    # Single record
    # ------------------------------------------------------------------

    def transform(
        self,
        record: Any,
        entity_type: str,
        *,
        record_index: int = 0,
    ) -> TransformationResult:
        """
        Transform one legacy record.

        Raises:
            ConfigurationError: no mappings or transformer for entity_type.
        """
        mappings, transformer = self._resolve(entity_type)
        return self._transform_resolved(record, entity_type, mappings, transformer, record_index)

    def _transform_resolved(
        self,
        record: Any,
        entity_type: str,
        mappings: tuple[FieldMapping, ...],
        transformer: StructuralTransformer,
        record_index: int,
    ) -> TransformationResult:
        started = time.perf_counter()
        context = TransformContext(entity_type, self._clock, strict_codes=self.strict_codes)
        mapped: dict[str, Any] | None = None
        try:
            if not isinstance(record, Mapping):
                raise MalformedRecordError(
                    f"expected key/value record, got {type(record).__name__}"
                )
            outcome = apply_field_mappings(record, mappings, entity_type=entity_type)
            mapped = dict(outcome.mapped_data)
            context.warnings.extend(outcome.warnings)
            context.consumed.update(outcome.consumed_fields)

            shaped = transformer.transform(record, dict(mapped), context)
            data, unrecognized = self._stamp(record, shaped, entity_type, context)

            validator = self._validators.get(entity_type)
            if validator is not None:
                validation = validator.validate_creation(data)
                if not validation.is_valid:
                    raise RecordValidationError(entity_type, validation.errors)
        except RecordError as exc:
            logger.debug(
                "record_failed",
                extra={"record_index": record_index, "error_code": exc.code, "error": str(exc)},
            )
            return self._failure(exc, entity_type, context, mapped, record_index, started)
        except ConfigurationError:
            raise
        except Exception as exc:
            error = TransformerFailedError(entity_type, exc)
            error.__cause__ = exc
            logger.warning(
                "transformer_failed",
                extra={
                    "record_index": record_index,
                    "error_code": error.code,
                    "error": str(exc),
                    "exc_class": type(exc).__name__,
                },
            )
            return self._failure(error, entity_type, context, mapped, record_index, started)

        elapsed = (time.perf_counter() - started) * 1000
        self.metrics.record(entity_type, True, elapsed)
        logger.debug(
            "record_transformed",
            extra={"record_index": record_index, "entity_id": data["id"]},
        )
        return TransformationResult(
            success=True,
            entity_type=entity_type,
            data=data,
            transformation_time_ms=elapsed,
            fields_mapped=outcome.fields_mapped,
            fields_preserved=len(unrecognized),
            warnings=tuple(context.warnings),
            mapped_data=mapped,
            unrecognized_fields=unrecognized,
            record_index=record_index,
        )

    def _failure(
        self,
        exc: RecordError,
        entity_type: str,
        context: TransformContext,
        mapped: dict[str, Any] | None,
        record_index: int,
        started: float,
    ) -> TransformationResult:
        elapsed = (time.perf_counter() - started) * 1000
        self.metrics.record(entity_type, False, elapsed)
        return TransformationResult(
            success=False,
            entity_type=entity_type,
            error=str(exc),
            error_code=exc.code,
            transformation_time_ms=elapsed,
            warnings=tuple(context.warnings),
            mapped_data=mapped,
            record_index=record_index,
        )

    def _stamp(
        self,
        record: Mapping[str, Any],
        shaped: dict[str, Any],
        entity_type: str,
        context: TransformContext,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        now = self._clock.now()
        data = dict(shaped)

        external_ids = data.pop("external_ids", None)
        external_id = data.pop("external_id", None)
        if not external_ids:
            if is_present(external_id):
                external_ids = [external_id]
            else:
                for name in _LEGACY_ID_FIELDS:
                    found = find_field(record, name)
                    if found is not None and is_present(found[1]):
                        context.consumed.add(found[0])
                        external_ids = [found[1]]
                        break
        if isinstance(external_ids, (str, int)):
            external_ids = [external_ids]
        data["external_ids"] = _unique_strings(external_ids or ())

        if not is_present(data.get("id")):
            data["id"] = str(uuid4())
        else:
            data["id"] = str(data["id"])

        unrecognized = {
            key: value for key, value in record.items() if key not in context.consumed
        }
        metadata = dict(data.get("metadata") or {})
        metadata.update(
            {
                "transformation_source": TRANSFORMATION_SOURCE,
                "original_entity_type": entity_type,
                "transformation_date": now.isoformat(),
                "legacy_system_fields": list(unrecognized),
                "unmapped_fields": dict(unrecognized),
            }
        )
        data["metadata"] = metadata

        data["created_at"] = _iso(data.get("created_at")) or now.isoformat()
        data["updated_at"] = _iso(data.get("updated_at")) or now.isoformat()
        data["version"] = _version(data.get("version"))
        return data, unrecognized

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def transform_batch(
        self,
        records: Iterable[Any],
        entity_type: str,
    ) -> BatchTransformationResult:
        """
        Transform records sequentially; a failed record never stops the batch.

        Raises:
            ConfigurationError: before any record is processed.
        """
        mappings, transformer = self._resolve(entity_type)
        items = list(records)
        total = len(items)
        batch_id = str(uuid4())

        with LogContext.bind(batch_id=batch_id, entity_type=entity_type):
            logger.info("batch_started", extra={"total_records": total})
            results: list[TransformationResult] = []
            for index, record in enumerate(items):
                results.append(
                    self._transform_resolved(record, entity_type, mappings, transformer, index)
                )
                done = index + 1
                if done % self.progress_interval == 0 and done < total:
                    logger.info(
                        "batch_progress",
                        extra={"processed": done, "total_records": total},
                    )
            batch = summarize_batch(entity_type, results)
            logger.info(
                "batch_completed",
                extra={
                    "total_records": batch.total_records,
                    "successful": batch.successful_transformations,
                    "failed": batch.failed_transformations,
                    "success_rate": round(batch.success_rate, 2),
                    "average_ms": round(batch.average_transformation_time_ms, 3),
                },
            )
        return batch

    def transform_file(
        self,
        path: str | Path,
        entity_type: str,
        options: dict[str, Any] | None = None,
    ) -> BatchTransformationResult:
        # Resolve first so a configuration problem wins over a file problem
        self._resolve(entity_type)
        records = read_records(path, options)
        logger.info("input_loaded", extra={"path": str(path), "record_count": len(records)})
        return self.transform_batch(records, entity_type)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def get_metrics(self, entity_type: str) -> TransformationMetrics | None:
        return self.metrics.get(entity_type)

    def get_all_metrics(self) -> dict[str, TransformationMetrics]:
        return self.metrics.snapshot()

    def clear_metrics(self) -> None:
        self.metrics.clear()


def summarize_batch(
    entity_type: str,
    results: list[TransformationResult],
) -> BatchTransformationResult:
    """Aggregate per-record results into batch statistics."""
    total = len(results)
    successes = sum(1 for r in results if r.success)
    total_time = sum(r.transformation_time_ms for r in results)
    average = total_time / total if total else 0.0
    peak = max(
        (1000.0 / r.transformation_time_ms for r in results if r.transformation_time_ms > 0),
        default=0.0,
    )

    warnings: dict[str, None] = {}
    errors: dict[str, None] = {}
    for r in results:
        for w in r.warnings:
            warnings.setdefault(w.message, None)
        if not r.success and r.error:
            errors.setdefault(r.error, None)

    return BatchTransformationResult(
        entity_type=entity_type,
        results=tuple(results),
        total_records=total,
        successful_transformations=successes,
        failed_transformations=total - successes,
        success_rate=(successes / total * 100) if total else 0.0,
        total_transformation_time_ms=total_time,
        average_transformation_time_ms=average,
        transformations_per_second=(1000.0 / average) if average > 0 else 0.0,
        peak_transformations_per_second=peak,
        warnings=tuple(warnings),
        errors=tuple(errors),
    )


def build_reference_engine(
    *,
    metrics: MetricsRegistry | None = None,
    clock: Clock | None = None,
    strict_codes: bool = False,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    validate: bool = False,
) -> TransformationEngine:
    """Engine wired with the reference mappings and transformers."""
    engine = TransformationEngine(
        metrics=metrics,
        clock=clock,
        strict_codes=strict_codes,
        progress_interval=progress_interval,
    )
    for entity_type, transformer in reference_transformers().items():
        engine.register_transformer(entity_type, transformer)
        engine.register_mappings(entity_type, REFERENCE_MAPPINGS[entity_type])
        if validate:
            engine.register_validator(entity_type, REFERENCE_VALIDATORS[entity_type])
    return engine


def _unique_strings(values: Iterable[Any]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if is_present(value):
            seen.setdefault(str(value).strip(), None)
    return list(seen)


def _iso(value: Any) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    if is_present(value):
        return str(value)
    return None


def _version(value: Any) -> int:
    try:
        version = int(value)
    except (TypeError, ValueError):
        return 1
    return version if version >= 1 else 1
