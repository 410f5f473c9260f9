"""
Batch reports and output artifacts.

The text report is deterministic for a given batch result: no wall-clock
timestamps, sections in fixed order, errors and warnings in first-seen
order.  Every distinct failed-record error and every distinct warning is
listed; nothing is truncated.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from refuse_kernel.logging_config import get_logger

from refuse_ingestion.domain.types import BatchTransformationResult
from refuse_ingestion.metrics import MetricsRegistry

logger = get_logger("ingestion.reporting")

LOW_SUCCESS_RATE = 90.0
SLOW_AVERAGE_MS = 100.0
WARNING_RATIO = 0.1


def recommendations(batch: BatchTransformationResult) -> list[str]:
    recs: list[str] = []
    if batch.total_records and batch.success_rate < LOW_SUCCESS_RATE:
        recs.append("Review field mappings: low success rate suggests mapping issues")
        recs.append("Check data quality: failed records may have data quality issues")
    if batch.average_transformation_time_ms > SLOW_AVERAGE_MS:
        recs.append("Optimize transformations: slow records suggest complex mapping logic")
        recs.append("Consider processing records in smaller batches")
    if len(batch.warnings) > batch.total_records * WARNING_RATIO:
        recs.append("Address warnings: high warning count suggests data inconsistencies")
    return recs


def generate_transformation_report(batch: BatchTransformationResult) -> str:
    lines: list[str] = [
        f"Transformation Report: {batch.entity_type}",
        "=" * 60,
        "",
        "Summary",
        "-------",
        f"Total records:        {batch.total_records}",
        f"Successful:           {batch.successful_transformations}",
        f"Failed:               {batch.failed_transformations}",
        f"Success rate:         {batch.success_rate:.2f}%",
        f"Error rate:           {(100.0 - batch.success_rate) if batch.total_records else 0.0:.2f}%",
        "",
        "Performance",
        "-----------",
        f"Total time:           {batch.total_transformation_time_ms:.2f} ms",
        f"Average time:         {batch.average_transformation_time_ms:.3f} ms/record",
        f"Average throughput:   {batch.transformations_per_second:.2f} records/s",
        f"Peak throughput:      {batch.peak_transformations_per_second:.2f} records/s",
        "",
    ]

    lines += ["Errors", "------"]
    if batch.errors:
        positions: dict[str, list[int]] = {}
        for r in batch.failed_results:
            positions.setdefault(r.error or "", []).append(r.record_index)
        for error in batch.errors:
            where = ", ".join(str(i) for i in positions.get(error, []))
            lines.append(f"- {error} (records: {where})")
    else:
        lines.append("None")
    lines.append("")

    lines += ["Warnings", "--------"]
    if batch.warnings:
        lines.extend(f"- {w}" for w in batch.warnings)
    else:
        lines.append("None")
    lines.append("")

    lines += ["Recommendations", "---------------"]
    recs = recommendations(batch)
    if recs:
        lines.extend(f"- {r}" for r in recs)
    else:
        lines.append("No specific recommendations.")
    return "\n".join(lines) + "\n"


def save_transformed_data(batch: BatchTransformationResult, path: str | Path) -> Path:
    """Write successful canonical payloads as a JSON array (possibly empty)."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as f:
        json.dump(batch.successful_data, f, indent=2, default=str)
        f.write("\n")
    logger.info(
        "output_written",
        extra={"path": str(target), "record_count": batch.successful_transformations},
    )
    return target


def save_report(text: str, path: str | Path) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


def render_metrics_report(registry: MetricsRegistry) -> str:
    entity_types = registry.entity_types()
    if not entity_types:
        return "No transformation metrics recorded.\n"
    lines = ["Transformation Metrics", "=" * 60]
    for entity_type in entity_types:
        m = registry.get(entity_type)
        if m is None:
            continue
        lines += [
            "",
            entity_type,
            "-" * len(entity_type),
            f"Total:                {m.total_transformations}",
            f"Successful:           {m.successful_transformations}",
            f"Failed:               {m.failed_transformations}",
            f"Success rate:         {m.success_rate:.2f}%",
            f"Average time:         {m.average_transformation_time_ms:.3f} ms",
        ]
    return "\n".join(lines) + "\n"


def batch_summary(batch: BatchTransformationResult) -> dict[str, Any]:
    """Machine-readable summary (no per-record payloads)."""
    return {
        "entity_type": batch.entity_type,
        "total_records": batch.total_records,
        "successful_transformations": batch.successful_transformations,
        "failed_transformations": batch.failed_transformations,
        "success_rate": batch.success_rate,
        "average_transformation_time_ms": batch.average_transformation_time_ms,
        "transformations_per_second": batch.transformations_per_second,
        "peak_transformations_per_second": batch.peak_transformations_per_second,
        "warnings": list(batch.warnings),
        "errors": list(batch.errors),
    }
