"""
Legacy connector contract and the two stock implementations.

Contract:
    A LegacyConnector represents one external legacy system.  ``connect``
    returns the connection id plus the capabilities the system advertises;
    ``fetch_data`` returns the raw payload, either a mapping of collection
    name -> list of records (``{"customers": [...], "services": [...]}``) or
    a bare list of records for a single entity type.

    Both operations are coroutines: connector I/O is the only place the
    ingestion pipeline suspends.  Transformation itself never awaits.

Architecture: refuse_ingestion/connectors.  No kernel state; file access goes
through refuse_ingestion.adapters on a worker thread.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable
from uuid import uuid4

from refuse_kernel.exceptions import ConnectorError
from refuse_kernel.logging_config import get_logger

from refuse_ingestion.adapters import default_adapters, read_records
from refuse_ingestion.domain.types import ConnectionOptions, ConnectorCapabilities, SyncOptions

logger = get_logger("ingestion.connectors")


@runtime_checkable
class LegacyConnector(Protocol):
    """Protocol for one external legacy system."""

    name: str
    system_type: str

    async def connect(self, options: ConnectionOptions) -> ConnectorCapabilities:
        """Open a connection; raise on failure."""
        ...

    async def fetch_data(self, sync_options: SyncOptions) -> Any:
        """Return the raw payload (collection mapping or bare record list)."""
        ...


def new_connection_id(name: str) -> str:
    return f"{name}-{uuid4().hex[:12]}"


def select_collections(payload: Any, sync_options: SyncOptions) -> Any:
    """Narrow a collection payload to ``sync_options.entity_types`` when given."""
    if not sync_options.entity_types or not isinstance(payload, Mapping):
        return payload
    wanted = set(sync_options.entity_types)
    return {key: value for key, value in payload.items() if key in wanted}


# =============================================================================
# In-memory connector
# =============================================================================


class StaticLegacyConnector:
    """
    Connector serving a fixed payload.

    Used for the bundled sample systems and in tests.  ``fail_on_connect`` /
    ``fail_on_fetch`` make the corresponding operation raise ConnectorError.
    """

    def __init__(
        self,
        name: str,
        system_type: str,
        payload: Any,
        capabilities: tuple[str, ...] = (),
        *,
        fail_on_connect: str | None = None,
        fail_on_fetch: str | None = None,
    ):
        self.name = name
        self.system_type = system_type
        self._payload = payload
        self._capabilities = tuple(capabilities)
        self._fail_on_connect = fail_on_connect
        self._fail_on_fetch = fail_on_fetch
        self.connection_id: str | None = None

    async def connect(self, options: ConnectionOptions) -> ConnectorCapabilities:
        if self._fail_on_connect:
            raise ConnectorError(self._fail_on_connect)
        self.connection_id = new_connection_id(self.name)
        logger.info(
            "connector_connected",
            extra={"system_name": self.name, "host": options.host, "port": options.port},
        )
        return ConnectorCapabilities(self.connection_id, self._capabilities)

    async def fetch_data(self, sync_options: SyncOptions) -> Any:
        if self._fail_on_fetch:
            raise ConnectorError(self._fail_on_fetch)
        return select_collections(self._payload, sync_options)


# =============================================================================
# Directory connector
# =============================================================================


class FileLegacyConnector:
    """
    Connector over a directory export: one file per collection.

    ``customers.csv``, ``services.json``, ``routes.xlsx`` ... become the
    ``customers``, ``services``, ``routes`` collections.  Only files with a
    registered adapter extension are picked up.
    """

    def __init__(
        self,
        name: str,
        directory: str | Path,
        system_type: str = "file_export",
        read_options: dict[str, Any] | None = None,
    ):
        self.name = name
        self.system_type = system_type
        self.directory = Path(directory)
        self._read_options = dict(read_options or {})

    def _collection_files(self) -> dict[str, Path]:
        extensions = set(default_adapters())
        return {
            path.stem: path
            for path in sorted(self.directory.iterdir())
            if path.is_file() and path.suffix.lower() in extensions
        }

    async def connect(self, options: ConnectionOptions) -> ConnectorCapabilities:
        if not self.directory.is_dir():
            raise ConnectorError(f"Export directory not found: {self.directory}")
        files = await asyncio.to_thread(self._collection_files)
        return ConnectorCapabilities(new_connection_id(self.name), tuple(files))

    async def fetch_data(self, sync_options: SyncOptions) -> dict[str, list[Any]]:
        files = await asyncio.to_thread(self._collection_files)
        payload: dict[str, list[Any]] = {}
        for collection, path in select_collections(files, sync_options).items():
            payload[collection] = await asyncio.to_thread(
                read_records, path, dict(self._read_options)
            )
            logger.info(
                "collection_fetched",
                extra={
                    "system_name": self.name,
                    "collection": collection,
                    "record_count": len(payload[collection]),
                },
            )
        return payload
