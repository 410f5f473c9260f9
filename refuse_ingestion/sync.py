"""
LegacySystemBridge -- connector -> TransformationEngine orchestration.

Responsibility:
    Holds the registered legacy connectors and runs a sync as a chain of
    operations: connect, fetch, then one transform per collection.  Every
    operation is recorded as a SyncOperationResult; the sync as a whole is
    successful only when every operation succeeded.

Architecture position:
    Ingestion > Orchestration.  The only async code in the pipeline; it
    suspends only while awaiting a connector.  Transformation runs inline and
    sequentially after the fetch completes.

Failure modes:
    - Unknown system name -> ConnectorNotFoundError (raised).
    - Connector raising during connect/fetch -> failed operation (returned),
      later operations are skipped.
    - Payload that is not a mapping or list, or a collection that is not a
      list -> failed fetch operation.  Non-object records inside a list are
      passed on and fail individually in the batch.
    - Collection with no registered entity type -> failed transform operation.
    - Records failing inside a batch -> failed transform operation carrying
      the batch; the remaining collections still run.
"""

from __future__ import annotations

import time
from typing import Any, Mapping

from refuse_kernel.domain.clock import Clock, SystemClock
from refuse_kernel.domain.dtos import ValidationError, ValidationResult
from refuse_kernel.exceptions import ConfigurationError, ConnectorNotFoundError
from refuse_kernel.logging_config import LogContext, get_logger

from refuse_ingestion.connectors.base import LegacyConnector
from refuse_ingestion.domain.types import (
    BatchTransformationResult,
    ConnectionOptions,
    ConnectionResult,
    SyncOperationResult,
    SyncOptions,
    SyncResult,
)
from refuse_ingestion.engine import TransformationEngine

logger = get_logger("ingestion.sync")

COLLECTION_ENTITY_TYPES: dict[str, str] = {
    "customers": "customer",
    "services": "service",
    "routes": "route",
    "facilities": "facility",
}

OP_CONNECT = "connect"
OP_FETCH = "fetch"

INVALID_RECORD = "INVALID_RECORD"


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class LegacySystemBridge:
    """Registry of legacy connectors plus the sync routine."""

    def __init__(self, engine: TransformationEngine, clock: Clock | None = None):
        self.engine = engine
        self._clock = clock or SystemClock()
        self._connectors: dict[str, LegacyConnector] = {}

    def register_connector(self, connector: LegacyConnector) -> None:
        self._connectors[connector.name] = connector
        logger.info(
            "connector_registered",
            extra={"system_name": connector.name, "system_type": connector.system_type},
        )

    @property
    def system_names(self) -> list[str]:
        return sorted(self._connectors)

    def get_connector(self, system_name: str) -> LegacyConnector:
        connector = self._connectors.get(system_name)
        if connector is None:
            raise ConnectorNotFoundError(system_name)
        return connector

    # ------------------------------------------------------------------
    # Connect
    # ------------------------------------------------------------------

    async def connect(
        self,
        system_name: str,
        options: ConnectionOptions | None = None,
    ) -> ConnectionResult:
        """
        Connect to one legacy system.

        Raises:
            ConnectorNotFoundError: system_name is not registered.
        """
        connector = self.get_connector(system_name)
        try:
            capabilities = await connector.connect(options or ConnectionOptions())
        except Exception as exc:
            logger.warning(
                "connector_connect_failed",
                extra={"system_name": system_name, "error": str(exc)},
            )
            return ConnectionResult(system_name=system_name, success=False, error=str(exc))
        return ConnectionResult(
            system_name=system_name,
            success=True,
            connection_id=capabilities.connection_id,
            capabilities=tuple(capabilities.capabilities),
        )

    # ------------------------------------------------------------------
    # Payload shape
    # ------------------------------------------------------------------

    def validate_payload(self, system_name: str, payload: Any) -> ValidationResult:
        """
        Structural check of a fetched payload.

        A payload is either a list of record objects, or a mapping of
        collection name -> list of record objects.

        Raises:
            ConnectorNotFoundError: system_name is not registered.
        """
        self.get_connector(system_name)
        errors: list[ValidationError] = []
        if isinstance(payload, Mapping):
            for collection, records in payload.items():
                errors.extend(_check_records(records, str(collection)))
        elif isinstance(payload, list):
            errors.extend(_check_records(payload, "records"))
        else:
            errors.append(
                ValidationError(
                    code="INVALID_PAYLOAD",
                    message=f"{system_name} returned {type(payload).__name__}, "
                    "expected a collection mapping or a record list",
                )
            )
        return ValidationResult.from_errors(errors)

    def _collections(
        self, payload: Any, sync_options: SyncOptions
    ) -> dict[str, tuple[str, list[Any]]]:
        """collection name -> (entity type, records)."""
        if isinstance(payload, list):
            if not sync_options.entity_type:
                raise ConfigurationError(
                    "Record list payload needs sync_options.entity_type"
                )
            return {sync_options.entity_type: (sync_options.entity_type, payload)}
        return {
            str(collection): (
                COLLECTION_ENTITY_TYPES.get(str(collection), str(collection)),
                list(records),
            )
            for collection, records in payload.items()
        }

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync(
        self,
        system_name: str,
        sync_options: SyncOptions | None = None,
        connection_options: ConnectionOptions | None = None,
    ) -> SyncResult:
        """
        Connect, fetch and transform everything one legacy system offers.

        Raises:
            ConnectorNotFoundError: system_name is not registered.
        """
        connector = self.get_connector(system_name)
        sync_options = sync_options or SyncOptions()
        started = time.perf_counter()
        operations: list[SyncOperationResult] = []
        batches: dict[str, BatchTransformationResult] = {}

        with LogContext.bind(system_name=system_name):
            logger.info("sync_started", extra={"incremental": sync_options.incremental})

            step = time.perf_counter()
            connection = await self.connect(system_name, connection_options)
            operations.append(
                SyncOperationResult(
                    operation=OP_CONNECT,
                    success=connection.success,
                    duration_ms=_elapsed_ms(step),
                    error=connection.error,
                )
            )
            if connection.success:
                await self._fetch_and_transform(
                    connector, sync_options, operations, batches
                )

            result = SyncResult(
                system_name=system_name,
                success=all(op.success for op in operations),
                operations=tuple(operations),
                batches=batches,
                total_duration_ms=_elapsed_ms(started),
                synced_at=self._clock.now(),
            )
            logger.info(
                "sync_completed",
                extra={
                    "success": result.success,
                    "operations": len(operations),
                    "failed_operations": sum(1 for op in operations if not op.success),
                    "duration_ms": round(result.total_duration_ms, 3),
                },
            )
        return result

    async def _fetch_and_transform(
        self,
        connector: LegacyConnector,
        sync_options: SyncOptions,
        operations: list[SyncOperationResult],
        batches: dict[str, BatchTransformationResult],
    ) -> None:
        step = time.perf_counter()
        try:
            payload = await connector.fetch_data(sync_options)
        except Exception as exc:
            logger.warning("connector_fetch_failed", extra={"error": str(exc)})
            operations.append(
                SyncOperationResult(
                    operation=OP_FETCH,
                    success=False,
                    duration_ms=_elapsed_ms(step),
                    error=str(exc),
                )
            )
            return

        shape = self.validate_payload(connector.name, payload)
        # Non-object records travel on; the batch fails them at their position
        structural = [e for e in shape.errors if e.code != INVALID_RECORD]
        for e in shape.errors:
            if e.code == INVALID_RECORD:
                logger.warning(
                    "payload_records_malformed",
                    extra={"collection": e.field, "positions": (e.details or {}).get("positions")},
                )
        collections: dict[str, tuple[str, list[Any]]] = {}
        error = "; ".join(e.message for e in structural) or None
        if not structural:
            try:
                collections = self._collections(payload, sync_options)
            except ConfigurationError as exc:
                error = str(exc)
        operations.append(
            SyncOperationResult(
                operation=OP_FETCH,
                success=error is None,
                record_count=sum(len(records) for _, records in collections.values()),
                duration_ms=_elapsed_ms(step),
                error=error,
            )
        )

        for collection, (entity_type, records) in collections.items():
            operations.append(self._transform_collection(collection, entity_type, records, batches))

    def _transform_collection(
        self,
        collection: str,
        entity_type: str,
        records: list[Any],
        batches: dict[str, BatchTransformationResult],
    ) -> SyncOperationResult:
        operation = f"transform:{entity_type}"
        step = time.perf_counter()
        try:
            batch = self.engine.transform_batch(records, entity_type)
        except ConfigurationError as exc:
            logger.warning(
                "collection_not_transformable",
                extra={"collection": collection, "error": str(exc)},
            )
            return SyncOperationResult(
                operation=operation,
                success=False,
                record_count=len(records),
                duration_ms=_elapsed_ms(step),
                error=str(exc),
            )
        batches[entity_type] = batch
        failed = batch.failed_transformations
        return SyncOperationResult(
            operation=operation,
            success=failed == 0,
            record_count=batch.total_records,
            duration_ms=_elapsed_ms(step),
            error=f"{failed} of {batch.total_records} records failed" if failed else None,
        )


def _check_records(records: Any, collection: str) -> list[ValidationError]:
    if not isinstance(records, list):
        return [
            ValidationError(
                code="INVALID_COLLECTION",
                message=f"Collection {collection!r} is not a list of records",
                field=collection,
            )
        ]
    bad = [i for i, record in enumerate(records) if not isinstance(record, Mapping)]
    if bad:
        return [
            ValidationError(
                code=INVALID_RECORD,
                message=f"Collection {collection!r} has non-object records at {bad}",
                field=collection,
                details={"positions": bad},
            )
        ]
    return []
