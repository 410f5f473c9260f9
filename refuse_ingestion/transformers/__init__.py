"""Entity-type-specific structural transformers."""

from refuse_ingestion.transformers.base import (
    CODE_DEFAULTED,
    StructuralTransformer,
    TransformContext,
)
from refuse_ingestion.transformers.customer import CustomerTransformer
from refuse_ingestion.transformers.facility import FacilityTransformer
from refuse_ingestion.transformers.route import RouteTransformer
from refuse_ingestion.transformers.service import ServiceTransformer


def reference_transformers() -> dict[str, StructuralTransformer]:
    return {
        "customer": CustomerTransformer(),
        "service": ServiceTransformer(),
        "route": RouteTransformer(),
        "facility": FacilityTransformer(),
    }


__all__ = [
    "CODE_DEFAULTED",
    "CustomerTransformer",
    "FacilityTransformer",
    "RouteTransformer",
    "ServiceTransformer",
    "StructuralTransformer",
    "TransformContext",
    "reference_transformers",
]
