"""Field mapping: named transforms, mapping application and reference tables."""

from refuse_ingestion.mapping.engine import (
    TRANSFORMS,
    MappingOutcome,
    apply_field_mappings,
    compile_field_mappings,
    find_field,
    invert_mapping,
    resolve_transform,
)
from refuse_ingestion.mapping.reference import REFERENCE_MAPPINGS

__all__ = [
    "MappingOutcome",
    "REFERENCE_MAPPINGS",
    "TRANSFORMS",
    "apply_field_mappings",
    "compile_field_mappings",
    "find_field",
    "invert_mapping",
    "resolve_transform",
]
