"""
Legacy export analysis: profile a source before transforming it.

Responsibility:
    Looks at raw legacy records (as returned by the adapters) and reports
    what a migration will run into: which fields exist and how often they
    carry a value, field names that differ only by case, mixed naming
    conventions, nested values that need structural reshaping, fields no
    registered mapping reads, and required mapping sources that are absent.
    A complexity level, a data-quality grade, risk factors and
    recommendations are derived from those counts.

Architecture position:
    Ingestion > Analysis.  Read-only; never transforms, never touches
    metrics.  The presence rule is the mapping engine's ``is_present``.

Thresholds:
    complexity   high when any field holds objects/arrays or there are more
                 than 20 fields, medium above 10 fields, low otherwise
    data quality mean field presence rate: >= 0.9 excellent, >= 0.7 good,
                 >= 0.5 fair, below that (or no fields at all) poor
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from refuse_kernel.logging_config import get_logger

from refuse_ingestion.adapters import read_records
from refuse_ingestion.domain.types import FieldMapping
from refuse_ingestion.mapping.engine import is_present

logger = get_logger("ingestion.analysis")

MANY_FIELDS = 20
SOME_FIELDS = 10

COMPLEXITY_LOW = "low"
COMPLEXITY_MEDIUM = "medium"
COMPLEXITY_HIGH = "high"

_CAMEL = re.compile(r"^[a-z][a-z0-9]*[A-Z]")
_PASCAL = re.compile(r"^[A-Z][a-z0-9]+[A-Za-z0-9]*$")


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldProfile:
    """How one legacy field name is populated across the object records."""

    name: str
    present_count: int = 0
    blank_count: int = 0  # Key present, value None or blank string
    missing_count: int = 0  # Key absent from the record
    value_types: tuple[str, ...] = ()
    naming_convention: str = "other"

    @property
    def total(self) -> int:
        return self.present_count + self.blank_count + self.missing_count

    @property
    def presence_rate(self) -> float:
        return self.present_count / self.total if self.total else 0.0

    @property
    def is_complex(self) -> bool:
        return "object" in self.value_types or "array" in self.value_types


@dataclass(frozen=True)
class SourceProfile:
    """Analysis of one legacy export (or one collection of it)."""

    total_records: int
    fields: tuple[FieldProfile, ...] = ()
    entity_type: str | None = None
    source: str | None = None
    malformed_positions: tuple[int, ...] = ()
    case_variants: tuple[tuple[str, ...], ...] = ()
    naming_conventions: tuple[str, ...] = ()
    unmapped_fields: dict[str, int] = field(default_factory=dict)
    missing_required: dict[str, int] = field(default_factory=dict)
    complexity: str = COMPLEXITY_LOW
    data_quality: str = "poor"
    risk_factors: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def complex_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.is_complex]

    def field_profile(self, name: str) -> FieldProfile | None:
        for profile in self.fields:
            if profile.name == name:
                return profile
        return None


# -----------------------------------------------------------------------------
# Classification helpers
# -----------------------------------------------------------------------------


def naming_convention(name: str) -> str:
    """UPPER_SNAKE, snake_case, camelCase, PascalCase or other."""
    letters = [c for c in name if c.isalpha()]
    if not letters:
        return "other"
    if all(c.isupper() for c in letters) and re.fullmatch(r"[A-Z0-9_]+", name):
        return "UPPER_SNAKE"
    if re.fullmatch(r"[a-z0-9_]+", name):
        return "snake_case"
    if "_" not in name and _CAMEL.match(name):
        return "camelCase"
    if "_" not in name and _PASCAL.match(name):
        return "PascalCase"
    return "other"


def value_type(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _case_variants(names: Iterable[str]) -> tuple[tuple[str, ...], ...]:
    groups: dict[str, list[str]] = {}
    for name in names:
        groups.setdefault(name.lower(), []).append(name)
    return tuple(tuple(group) for group in groups.values() if len(group) > 1)


def _complexity(fields: Sequence[FieldProfile]) -> str:
    if len(fields) > MANY_FIELDS or any(f.is_complex for f in fields):
        return COMPLEXITY_HIGH
    if len(fields) > SOME_FIELDS:
        return COMPLEXITY_MEDIUM
    return COMPLEXITY_LOW


def _data_quality(fields: Sequence[FieldProfile]) -> str:
    if not fields:
        return "poor"
    score = sum(f.presence_rate for f in fields) / len(fields)
    if score >= 0.9:
        return "excellent"
    if score >= 0.7:
        return "good"
    if score >= 0.5:
        return "fair"
    return "poor"


# -----------------------------------------------------------------------------
# Analysis
# -----------------------------------------------------------------------------


def analyze_records(
    records: Sequence[Any],
    *,
    mappings: Iterable[FieldMapping] | None = None,
    entity_type: str | None = None,
    source: str | None = None,
) -> SourceProfile:
    """
    Profile legacy records.

    With ``mappings``, also counts fields no mapping reads (matched the way
    the mapping engine matches, ignoring case) and required mapping sources
    absent or blank in some records.
    """
    objects: list[Mapping[str, Any]] = []
    malformed: list[int] = []
    for index, record in enumerate(records):
        if isinstance(record, Mapping):
            objects.append(record)
        else:
            malformed.append(index)

    # First-seen field order across all records
    names: dict[str, None] = {}
    for record in objects:
        for key in record:
            names.setdefault(str(key), None)

    fields: list[FieldProfile] = []
    for name in names:
        present = blank = missing = 0
        types: dict[str, None] = {}
        for record in objects:
            if name not in record:
                missing += 1
            elif is_present(record[name]):
                present += 1
                types.setdefault(value_type(record[name]), None)
            else:
                blank += 1
        fields.append(
            FieldProfile(
                name=name,
                present_count=present,
                blank_count=blank,
                missing_count=missing,
                value_types=tuple(sorted(types)),
                naming_convention=naming_convention(name),
            )
        )

    unmapped: dict[str, int] = {}
    missing_required: dict[str, int] = {}
    if mappings is not None:
        mapping_list = list(mappings)
        read = {fm.source.lower() for fm in mapping_list}
        for profile in fields:
            carried = profile.present_count + profile.blank_count
            if profile.name.lower() not in read and carried:
                unmapped[profile.name] = carried
        for fm in mapping_list:
            if not fm.required:
                continue
            lacking = sum(1 for record in objects if not _has_value(record, fm.source))
            if lacking:
                missing_required[fm.source] = lacking

    variants = _case_variants(names)
    conventions = tuple(sorted({f.naming_convention for f in fields} - {"other"}))
    complexity = _complexity(fields)
    quality = _data_quality(fields)

    profile = SourceProfile(
        total_records=len(records),
        fields=tuple(fields),
        entity_type=entity_type,
        source=source,
        malformed_positions=tuple(malformed),
        case_variants=variants,
        naming_conventions=conventions,
        unmapped_fields=unmapped,
        missing_required=missing_required,
        complexity=complexity,
        data_quality=quality,
    )
    profile = _with_findings(profile)
    logger.info(
        "source_analyzed",
        extra={
            "source": source,
            "entity_type": entity_type,
            "total_records": profile.total_records,
            "fields": len(fields),
            "complexity": complexity,
            "data_quality": quality,
            "malformed_records": len(malformed),
        },
    )
    return profile


def _has_value(record: Mapping[str, Any], name: str) -> bool:
    if name in record:
        return is_present(record[name])
    lowered = name.lower()
    return any(
        isinstance(key, str) and key.lower() == lowered and is_present(value)
        for key, value in record.items()
    )


def _with_findings(profile: SourceProfile) -> SourceProfile:
    risks: list[str] = []
    recommendations: list[str] = []

    if len(profile.fields) > MANY_FIELDS:
        risks.append(f"High number of fields ({len(profile.fields)})")
    if profile.complex_fields:
        risks.append(
            "Nested object/array fields need structural transformation: "
            + ", ".join(profile.complex_fields)
        )
        recommendations.append(
            "Check that a structural transformer handles every nested field"
        )
    if profile.fields and not any("id" in name.lower() for name in profile.field_names):
        risks.append("Missing primary identifier")
    if profile.malformed_positions:
        risks.append(f"{len(profile.malformed_positions)} non-object records")
        recommendations.append(
            "Repair or remove non-object records at positions "
            f"{list(profile.malformed_positions)}; they will fail transformation"
        )

    if profile.data_quality in ("poor", "fair"):
        recommendations.append(
            "Improve data quality before migration: clean up missing and blank values"
        )
    for group in profile.case_variants:
        recommendations.append(
            f"Field names differ only by case ({'/'.join(group)}); "
            "only the exact or first case-insensitive match is mapped"
        )
    if len(profile.naming_conventions) > 1:
        recommendations.append(
            "Field naming mixes conventions ("
            + ", ".join(profile.naming_conventions)
            + "); confirm mappings name each variant"
        )
    for source, count in profile.missing_required.items():
        recommendations.append(
            f"Required field {source} has no value in {count} record(s); those records will fail"
        )
    if profile.unmapped_fields:
        recommendations.append(
            f"{len(profile.unmapped_fields)} field(s) are not read by any field mapping "
            "and will be kept verbatim in unmapped_fields: "
            + ", ".join(profile.unmapped_fields)
        )
    if profile.complexity == COMPLEXITY_HIGH and len(profile.fields) > MANY_FIELDS:
        recommendations.append("Consider a phased migration starting with the core fields")

    return replace(
        profile,
        risk_factors=tuple(risks),
        recommendations=tuple(recommendations),
    )


def analyze_file(
    path: str | Path,
    entity_type: str | None = None,
    *,
    mappings: Iterable[FieldMapping] | None = None,
    options: dict[str, Any] | None = None,
) -> SourceProfile:
    """
    Read ``path`` through the adapters and profile it.

    Raises:
        FileNotFoundError: path does not exist.
        SourceFormatError: unsupported extension or unparseable content.
    """
    records = read_records(path, options)
    return analyze_records(
        records, mappings=mappings, entity_type=entity_type, source=str(path)
    )


# -----------------------------------------------------------------------------
# Report
# -----------------------------------------------------------------------------


def render_source_profile(profile: SourceProfile) -> str:
    """Deterministic text rendering of a SourceProfile."""
    title = profile.source or "records"
    if profile.entity_type:
        title = f"{title} ({profile.entity_type})"
    lines = [
        f"Legacy source analysis: {title}",
        f"Records: {profile.total_records}  fields: {len(profile.fields)}  "
        f"non-object records: {len(profile.malformed_positions)}",
        f"Complexity: {profile.complexity}  data quality: {profile.data_quality}",
        "",
        "Fields:",
    ]
    for f in profile.fields:
        types = ",".join(f.value_types) or "-"
        lines.append(
            f"  {f.name:<24} present {f.presence_rate * 100:5.1f}%  "
            f"blank {f.blank_count:<4} missing {f.missing_count:<4} types {types}"
        )
    if profile.naming_conventions:
        lines.append(f"Naming conventions: {', '.join(profile.naming_conventions)}")
    if profile.unmapped_fields:
        lines.append("Unmapped fields:")
        lines.extend(f"  {name}: {count}" for name, count in profile.unmapped_fields.items())
    if profile.risk_factors:
        lines.append("Risk factors:")
        lines.extend(f"  - {risk}" for risk in profile.risk_factors)
    if profile.recommendations:
        lines.append("Recommendations:")
        lines.extend(f"  - {rec}" for rec in profile.recommendations)
    return "\n".join(lines) + "\n"
