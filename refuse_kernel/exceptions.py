"""
Typed Exception Hierarchy for the Refuse Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from RefuseKernelError:

    RefuseKernelError (base)
    |
    +-- EntityError
    |   +-- EntityNotFoundError
    |   +-- EntityValidationError
    |
    +-- ConcurrencyError
    |   +-- ConcurrencyConflictError
    |
    +-- IngestionError
    |   +-- ConfigurationError
    |   +-- SourceFormatError
    |   +-- TransformFunctionError
    |   +-- RecordError
    |       +-- RequiredFieldMissingError
    |       +-- MalformedRecordError
    |       +-- UnrecognizedCodeError
    |       +-- RecordValidationError
    |       +-- TransformerFailedError
    |
    +-- ConnectorError
        +-- ConnectorNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                         | When Raised
----------------|------------------------------|----------------------------------------
Entity          | ENTITY_NOT_FOUND             | Update/archive/clone of unknown id
                | ENTITY_VALIDATION_FAILED     | Payload failed validation (all errors)
----------------|------------------------------|----------------------------------------
Concurrency     | VERSION_CONFLICT             | expected_version != current version
----------------|------------------------------|----------------------------------------
Ingestion       | MAPPING_CONFIGURATION_ERROR  | Missing/invalid mapping or transformer
                | SOURCE_FORMAT_ERROR          | Unreadable or unsupported input file
                | TRANSFORM_FUNCTION_FAILED    | Per-field transform raised (recovered)
----------------|------------------------------|----------------------------------------
Record          | REQUIRED_FIELD_MISSING       | Required source field absent
                | MALFORMED_RECORD             | Record is not a key/value mapping
                | UNRECOGNIZED_CODE            | Unknown code with strict mapping on
                | RECORD_VALIDATION_FAILED     | Canonical payload failed validation
----------------|------------------------------|----------------------------------------
Connector       | CONNECTOR_NOT_FOUND          | Sync against unregistered system

===============================================================================
HANDLING PATTERNS
===============================================================================

Record-scoped errors (RecordError subclasses) are caught by the
transformation engine and returned as data on the TransformationResult;
batches never stop on them.  ConfigurationError and SourceFormatError abort
the whole invocation.  ConcurrencyConflictError is surfaced to the caller
unchanged; the kernel never retries or merges.

    try:
        manager.update(entity_id, changes, expected_version=3)
    except ConcurrencyConflictError as e:
        reload_and_retry(e.entity_id, e.current_version)
===============================================================================
"""

from __future__ import annotations

from typing import Any


class RefuseKernelError(Exception):
    """
    Base exception for all refuse kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "REFUSE_KERNEL_ERROR"


# Entity-related exceptions


class EntityError(RefuseKernelError):
    """Base exception for entity lifecycle errors."""

    code: str = "ENTITY_ERROR"


class EntityNotFoundError(EntityError):
    """Entity with the given id does not exist in the store."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class EntityValidationError(EntityError):
    """
    Entity payload failed validation.

    ``errors`` holds every ValidationError found, not just the first.
    """

    code: str = "ENTITY_VALIDATION_FAILED"

    def __init__(self, entity_type: str, errors: list[Any] | tuple[Any, ...]):
        self.entity_type = entity_type
        self.errors = list(errors)
        messages = "; ".join(getattr(e, "message", str(e)) for e in self.errors)
        super().__init__(f"Validation failed for {entity_type}: {messages}")


# Concurrency-related exceptions


class ConcurrencyError(RefuseKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrencyConflictError(ConcurrencyError):
    """Update presented a stale expected version."""

    code: str = "VERSION_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int,
        current_version: int,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Version conflict on {entity_type} {entity_id}: "
            f"expected version {expected_version}, "
            f"current version {current_version}"
        )


# Ingestion-related exceptions


class IngestionError(RefuseKernelError):
    """Base exception for legacy-data ingestion errors."""

    code: str = "INGESTION_ERROR"


class ConfigurationError(IngestionError):
    """Mapping, transformer or settings configuration is missing or invalid."""

    code: str = "MAPPING_CONFIGURATION_ERROR"

    def __init__(self, message: str, entity_type: str | None = None):
        self.entity_type = entity_type
        super().__init__(message)


class SourceFormatError(IngestionError):
    """Input file cannot be read as a list of records."""

    code: str = "SOURCE_FORMAT_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class TransformFunctionError(IngestionError):
    """
    A per-field transform function raised.

    Recovered by the mapping engine: the raw value is kept and the failure
    surfaces as a warning on the result.
    """

    code: str = "TRANSFORM_FUNCTION_FAILED"

    def __init__(self, source_field: str, target_field: str, cause: BaseException):
        self.source_field = source_field
        self.target_field = target_field
        self.cause = repr(cause)
        super().__init__(
            f"Transform failed for {source_field} -> {target_field}: {cause}"
        )


class RecordError(IngestionError):
    """Base exception for record-scoped failures (returned as data)."""

    code: str = "RECORD_ERROR"


class RequiredFieldMissingError(RecordError):
    """A required source field is absent from the legacy record."""

    code: str = "REQUIRED_FIELD_MISSING"

    def __init__(self, source_field: str, target_field: str, entity_type: str | None = None):
        self.source_field = source_field
        self.target_field = target_field
        self.entity_type = entity_type
        super().__init__(f"Required field missing: {source_field}")


class MalformedRecordError(RecordError):
    """Record is not a key/value mapping."""

    code: str = "MALFORMED_RECORD"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed record: {reason}")


class UnrecognizedCodeError(RecordError):
    """Legacy code not present in a lookup table (strict mapping only)."""

    code: str = "UNRECOGNIZED_CODE"

    def __init__(self, field: str, value: Any, allowed: tuple[str, ...] = ()):
        self.field = field
        self.value = value
        self.allowed = allowed
        super().__init__(f"Unrecognized {field} code: {value!r}")


class TransformerFailedError(RecordError):
    """A structural transformer or the stamping step raised unexpectedly."""

    code: str = "TRANSFORMER_FAILED"

    def __init__(self, entity_type: str, cause: BaseException):
        self.entity_type = entity_type
        self.cause = repr(cause)
        super().__init__(f"Transformer failed for {entity_type}: {cause}")


class RecordValidationError(RecordError):
    """Canonical payload failed the registered entity validator."""

    code: str = "RECORD_VALIDATION_FAILED"

    def __init__(self, entity_type: str, errors: list[Any] | tuple[Any, ...]):
        self.entity_type = entity_type
        self.errors = list(errors)
        messages = "; ".join(getattr(e, "message", str(e)) for e in self.errors)
        super().__init__(f"Canonical {entity_type} invalid: {messages}")


# Connector-related exceptions


class ConnectorError(RefuseKernelError):
    """Base exception for legacy connector errors."""

    code: str = "CONNECTOR_ERROR"


class ConnectorNotFoundError(ConnectorError):
    """No connector registered under the requested system name."""

    code: str = "CONNECTOR_NOT_FOUND"

    def __init__(self, system_name: str):
        self.system_name = system_name
        super().__init__(f"Legacy connector not found: {system_name}")
