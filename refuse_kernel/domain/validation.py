"""
Validation pipeline -- stateless field validators and a declarative composer.

Responsibility:
    Reusable, pure checks that each return ``list[ValidationError]`` (empty
    means valid), and ``EntityValidator`` which composes them for an entity
    type and reports every failure, never just the first.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    Validators never raise on bad input; malformed values become
    ValidationErrors.  EntityManager converts a failed result into
    EntityValidationError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from refuse_kernel.domain.dtos import ValidationError, ValidationResult

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-\(\)]{10,}$")

ADDRESS_PARTS: tuple[str, ...] = ("street", "city", "state", "zip_code")

Rule = Callable[[Mapping[str, Any]], list[ValidationError]]


def is_missing(value: Any) -> bool:
    """None, blank strings and empty collections count as missing."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


# -----------------------------------------------------------------------------
# Field validators
# -----------------------------------------------------------------------------


def validate_required_fields(
    data: Mapping[str, Any],
    fields: Iterable[str],
) -> list[ValidationError]:
    """One error per missing field, in the order the fields were given."""
    errors: list[ValidationError] = []
    for name in fields:
        if is_missing(data.get(name)):
            errors.append(
                ValidationError(
                    code="REQUIRED_FIELD_MISSING",
                    message=f"{name} is required",
                    field=name,
                )
            )
    return errors


def validate_enum_value(
    value: Any,
    allowed: Iterable[str],
    field: str,
) -> list[ValidationError]:
    if value is None:
        return []
    allowed_values = tuple(allowed)
    if value not in allowed_values:
        return [
            ValidationError(
                code="INVALID_ENUM_VALUE",
                message=f"{field} must be one of: {', '.join(allowed_values)}",
                field=field,
                details={"value": value, "allowed": list(allowed_values)},
            )
        ]
    return []


def validate_string_length(
    value: Any,
    max_length: int,
    field: str,
) -> list[ValidationError]:
    if isinstance(value, str) and len(value) > max_length:
        return [
            ValidationError(
                code="STRING_TOO_LONG",
                message=f"{field} must be {max_length} characters or less",
                field=field,
                details={"length": len(value), "max_length": max_length},
            )
        ]
    return []


def validate_email(value: Any, field: str = "email") -> list[ValidationError]:
    """``local@domain.tld`` shape check; absent values pass."""
    if is_missing(value):
        return []
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
        return [
            ValidationError(
                code="INVALID_EMAIL",
                message=f"{field} is not a valid email address",
                field=field,
                details={"value": value},
            )
        ]
    return []


def validate_phone(value: Any, field: str = "phone") -> list[ValidationError]:
    """Optional leading ``+``, then at least ten digits/spaces/dashes/parens."""
    if is_missing(value):
        return []
    if not isinstance(value, str) or not PHONE_PATTERN.match(value):
        return [
            ValidationError(
                code="INVALID_PHONE",
                message=f"{field} is not a valid phone number",
                field=field,
                details={"value": value},
            )
        ]
    return []


def validate_address(value: Any, field: str = "address") -> list[ValidationError]:
    """Require street, city, state and zip_code; one error per missing part."""
    if is_missing(value):
        return [
            ValidationError(
                code="REQUIRED_FIELD_MISSING",
                message=f"{field} is required",
                field=field,
            )
        ]
    if not isinstance(value, Mapping):
        return [
            ValidationError(
                code="INVALID_ADDRESS",
                message=f"{field} must be an object",
                field=field,
            )
        ]
    errors: list[ValidationError] = []
    for part in ADDRESS_PARTS:
        if is_missing(value.get(part)):
            errors.append(
                ValidationError(
                    code="ADDRESS_INCOMPLETE",
                    message=f"{field}.{part} is required",
                    field=f"{field}.{part}",
                )
            )
    return errors


# -----------------------------------------------------------------------------
# Composer
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityValidator:
    """
    Declarative validator for one entity type.

    Creation checks every ``required_on_create`` field; update checks only
    the fields present in the update payload (plus ``required_on_update``),
    so partial updates are allowed but present values must still be valid.
    """

    entity_type: str
    required_on_create: tuple[str, ...] = ()
    required_on_update: tuple[str, ...] = ()
    enums: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    max_lengths: Mapping[str, int] = field(default_factory=dict)
    email_fields: tuple[str, ...] = ()
    phone_fields: tuple[str, ...] = ()
    address_fields: tuple[str, ...] = ()
    rules: tuple[Rule, ...] = ()

    def _check_values(
        self,
        data: Mapping[str, Any],
        only_present: bool,
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []
        for name, allowed in self.enums.items():
            errors.extend(validate_enum_value(data.get(name), allowed, name))
        for name, limit in self.max_lengths.items():
            errors.extend(validate_string_length(data.get(name), limit, name))
        for name in self.email_fields:
            errors.extend(validate_email(data.get(name), name))
        for name in self.phone_fields:
            errors.extend(validate_phone(data.get(name), name))
        for name in self.address_fields:
            if only_present and name not in data:
                continue
            errors.extend(validate_address(data.get(name), name))
        for rule in self.rules:
            errors.extend(rule(data))
        return errors

    def validate_creation(self, data: Mapping[str, Any]) -> ValidationResult:
        errors = validate_required_fields(data, self.required_on_create)
        errors.extend(self._check_values(data, only_present=False))
        return ValidationResult.from_errors(_unique(errors))

    def validate_update(self, data: Mapping[str, Any]) -> ValidationResult:
        errors = validate_required_fields(data, self.required_on_update)
        # Fields being set must not be blanked out
        blanked = [
            name
            for name in self.required_on_create
            if name in data and is_missing(data[name])
        ]
        errors.extend(validate_required_fields(data, blanked))
        errors.extend(self._check_values(data, only_present=True))
        return ValidationResult.from_errors(_unique(errors))


def _unique(errors: list[ValidationError]) -> list[ValidationError]:
    seen: set[tuple[str, str | None]] = set()
    out: list[ValidationError] = []
    for error in errors:
        key = (error.code, error.field)
        if key not in seen:
            seen.add(key)
            out.append(error)
    return out
