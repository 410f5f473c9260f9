"""
Mapping engine: pure field-by-field copy from a legacy record to a mapped dict.

ZERO I/O apart from logging.  Structural reshaping (addresses, schedules,
code tables) is NOT done here; see refuse_ingestion.transformers.

Presence rule:
    A source field is present when the record has the key (exact match
    first, then case-insensitive) and its value is neither None nor a blank
    string.

Per mapping:
    - present: apply the transform if any; a raising transform is recovered
      (warning + raw value kept)
    - absent and required: RequiredFieldMissingError (record fails)
    - absent and optional: default_value when one is configured
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from refuse_kernel.exceptions import (
    ConfigurationError,
    RequiredFieldMissingError,
    TransformFunctionError,
)
from refuse_kernel.logging_config import get_logger

from refuse_ingestion.domain.types import FieldMapping, TransformFn, TransformWarning

logger = get_logger("ingestion.mapping")


# -----------------------------------------------------------------------------
# Result type
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MappingOutcome:
    """Mapped values plus the legacy keys they were read from."""

    mapped_data: dict[str, Any] = field(default_factory=dict)
    consumed_fields: frozenset[str] = frozenset()
    warnings: tuple[TransformWarning, ...] = ()
    fields_mapped: int = 0


# -----------------------------------------------------------------------------
# Field lookup
# -----------------------------------------------------------------------------


def find_field(record: Mapping[str, Any], name: str) -> tuple[str, Any] | None:
    """Return ``(actual_key, value)`` for ``name``, exact match first."""
    if name in record:
        return name, record[name]
    lowered = name.lower()
    for key, value in record.items():
        if isinstance(key, str) and key.lower() == lowered:
            return key, value
    return None


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


# -----------------------------------------------------------------------------
# Named transforms (pure)
# -----------------------------------------------------------------------------

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%d/%m/%Y", "%Y%m%d")
_TRUE_WORDS = frozenset({"true", "yes", "y", "1", "on", "t"})
_FALSE_WORDS = frozenset({"false", "no", "n", "0", "off", "f"})


def _strip(value: Any, record: dict[str, Any]) -> Any:
    return value.strip() if isinstance(value, str) else value


def _upper(value: Any, record: dict[str, Any]) -> Any:
    return value.upper() if isinstance(value, str) else value


def _lower(value: Any, record: dict[str, Any]) -> Any:
    return value.lower() if isinstance(value, str) else value


def _title(value: Any, record: dict[str, Any]) -> Any:
    return value.strip().title() if isinstance(value, str) else value


def _to_int(value: Any, record: dict[str, Any]) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Cannot coerce boolean to integer: {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(Decimal(str(value).strip()))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot coerce to integer: {value!r}") from exc


def _to_decimal(value: Any, record: dict[str, Any]) -> str:
    """Decimal as a string so canonical payloads stay JSON-native."""
    try:
        return str(Decimal(str(value).strip()))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot coerce to decimal: {value!r}") from exc


def _to_bool(value: Any, record: dict[str, Any]) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"Cannot coerce to boolean: {value!r}")


def _normalize_date(value: Any, record: dict[str, Any]) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
    except ValueError as exc:
        raise ValueError(f"Cannot parse date: {value!r}") from exc


def _split_list(value: Any, record: dict[str, Any]) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [part.strip() for part in str(value).split(",") if part.strip()]


TRANSFORMS: dict[str, TransformFn] = {
    "strip": _strip,
    "trim": _strip,
    "upper": _upper,
    "lower": _lower,
    "title": _title,
    "to_int": _to_int,
    "to_decimal": _to_decimal,
    "to_bool": _to_bool,
    "normalize_date": _normalize_date,
    "split_list": _split_list,
}


def resolve_transform(name: str | None, entity_type: str | None = None) -> TransformFn | None:
    """Look up a named transform; unknown names are a configuration error."""
    if not name:
        return None
    fn = TRANSFORMS.get(name.strip().lower())
    if fn is None:
        raise ConfigurationError(
            f"Unknown transform {name!r}; known: {', '.join(sorted(TRANSFORMS))}",
            entity_type=entity_type,
        )
    return fn


def compile_field_mappings(
    definitions: Iterable[Any],
    entity_type: str | None = None,
) -> tuple[FieldMapping, ...]:
    """
    Build FieldMappings from config definitions.

    Accepts refuse_config FieldMappingDef objects (anything with source,
    target, required, default_value, transform attributes).
    """
    compiled: list[FieldMapping] = []
    for d in definitions:
        compiled.append(
            FieldMapping(
                source=d.source,
                target=d.target,
                required=bool(d.required),
                transform=resolve_transform(d.transform, entity_type),
                default_value=d.default_value,
                transform_name=d.transform,
            )
        )
    return tuple(compiled)


# -----------------------------------------------------------------------------
# Apply mappings
# -----------------------------------------------------------------------------


def apply_field_mappings(
    record: Mapping[str, Any],
    mappings: Iterable[FieldMapping],
    *,
    entity_type: str | None = None,
) -> MappingOutcome:
    """
    Apply mappings in order to one legacy record.

    Raises:
        RequiredFieldMissingError: a required source field is absent.
    """
    mapped: dict[str, Any] = {}
    consumed: set[str] = set()
    warnings: list[TransformWarning] = []
    count = 0
    record_view = dict(record)

    for fm in mappings:
        found = find_field(record, fm.source)
        if found is not None:
            consumed.add(found[0])
        if found is None or not is_present(found[1]):
            if fm.required:
                raise RequiredFieldMissingError(fm.source, fm.target, entity_type)
            if fm.default_value is not None:
                mapped[fm.target] = fm.default_value
            continue

        raw_value = found[1]
        value = raw_value
        if fm.transform is not None:
            try:
                value = fm.transform(raw_value, record_view)
            except Exception as exc:
                error = TransformFunctionError(fm.source, fm.target, exc)
                logger.warning(
                    "transform_function_failed",
                    extra={
                        "source_field": fm.source,
                        "target_field": fm.target,
                        "transform": fm.transform_name,
                        "error": str(exc),
                    },
                )
                warnings.append(
                    TransformWarning(code=error.code, message=str(error), field=fm.target)
                )
                value = raw_value
        mapped[fm.target] = value
        count += 1

    return MappingOutcome(
        mapped_data=mapped,
        consumed_fields=frozenset(consumed),
        warnings=tuple(warnings),
        fields_mapped=count,
    )


def invert_mapping(
    mapped: Mapping[str, Any],
    mappings: Iterable[FieldMapping],
) -> dict[str, Any]:
    """Target -> source lookup: rebuild legacy field values from mapped data."""
    inverted: dict[str, Any] = {}
    for fm in mappings:
        if fm.target in mapped and fm.source not in inverted:
            inverted[fm.source] = mapped[fm.target]
    return inverted
