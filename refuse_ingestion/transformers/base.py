"""
Structural transformer contract and shared helpers.

A structural transformer receives the raw legacy record and the output of
the field-mapping pass, and returns the reshaped canonical payload.  It owns
the reshaping that is not a 1:1 copy: address consolidation, schedule
parsing, and free-text code normalisation through lookup tables.

Code tables:
    ``TransformContext.lookup_code`` maps a legacy code (case-insensitive)
    through a table.  Unrecognised codes fall back to the table's documented
    default and leave an UNRECOGNIZED_CODE_DEFAULTED warning (lenient mode),
    or raise UnrecognizedCodeError when the engine runs with strict codes.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from refuse_kernel.domain.clock import Clock
from refuse_kernel.exceptions import UnrecognizedCodeError
from refuse_kernel.logging_config import get_logger

from refuse_ingestion.domain.types import TransformWarning
from refuse_ingestion.mapping.engine import find_field, is_present

logger = get_logger("ingestion.transformers")

CODE_DEFAULTED = "UNRECOGNIZED_CODE_DEFAULTED"


class TransformContext:
    """Per-record scratch state shared between the engine and a transformer."""

    def __init__(self, entity_type: str, clock: Clock, *, strict_codes: bool = False):
        self.entity_type = entity_type
        self.clock = clock
        self.strict_codes = strict_codes
        self.warnings: list[TransformWarning] = []
        self.consumed: set[str] = set()

    def warn(self, code: str, message: str, field: str | None = None) -> None:
        self.warnings.append(TransformWarning(code=code, message=message, field=field))

    def legacy_value(self, record: Mapping[str, Any], *names: str) -> Any:
        """First present value among ``names`` (case-insensitive); marks it consumed."""
        for name in names:
            found = find_field(record, name)
            if found is not None and is_present(found[1]):
                self.consumed.add(found[0])
                return found[1]
        return None

    def lookup_code(
        self,
        value: Any,
        table: Mapping[str, str],
        default: str,
        field: str,
    ) -> str:
        key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        if key in table:
            return table[key]
        if self.strict_codes:
            raise UnrecognizedCodeError(field, value, tuple(sorted(set(table.values()))))
        logger.debug(
            "code_defaulted",
            extra={"field": field, "value": str(value), "default": default},
        )
        self.warn(
            CODE_DEFAULTED,
            f"Unrecognized {field} code {value!r}; defaulted to {default!r}",
            field,
        )
        return default


@runtime_checkable
class StructuralTransformer(Protocol):
    """Entity-type-specific reshaping after field mapping."""

    entity_type: str

    def transform(
        self,
        legacy: Mapping[str, Any],
        mapped: dict[str, Any],
        context: TransformContext,
    ) -> dict[str, Any]: ...


def pick(
    mapped: Mapping[str, Any],
    legacy: Mapping[str, Any],
    context: TransformContext,
    target: str,
    *legacy_names: str,
) -> Any:
    """Mapped value for ``target`` if present, else the first legacy alias."""
    value = mapped.get(target)
    if is_present(value):
        return value
    return context.legacy_value(legacy, *legacy_names) if legacy_names else None
