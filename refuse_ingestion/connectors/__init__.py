"""Legacy system connectors."""

from refuse_ingestion.connectors.base import (
    FileLegacyConnector,
    LegacyConnector,
    StaticLegacyConnector,
    select_collections,
)
from refuse_ingestion.connectors.samples import (
    TRASHFLOW_PAYLOAD,
    WASTEWORKS_PAYLOAD,
    sample_connectors,
    trashflow_connector,
    wasteworks_connector,
)

__all__ = [
    "FileLegacyConnector",
    "LegacyConnector",
    "StaticLegacyConnector",
    "TRASHFLOW_PAYLOAD",
    "WASTEWORKS_PAYLOAD",
    "sample_connectors",
    "select_collections",
    "trashflow_connector",
    "wasteworks_connector",
]
