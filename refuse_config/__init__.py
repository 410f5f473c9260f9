"""
refuse_config -- configuration for the legacy transformation tool.

Public API:
    load_field_mapping_document(path)  mapping document -> FieldMappingDefs
    load_batch_document(path)          batch document -> BatchEntryDefs
    load_settings(path, environ)       TransformerSettings
"""

from refuse_config.loader import (
    compute_checksum,
    load_batch_document,
    load_field_mapping_document,
    load_yaml_file,
    parse_field_mapping_def,
    parse_field_mapping_document,
)
from refuse_config.schema import BatchEntryDef, FieldMappingDef, TransformerSettings
from refuse_config.settings import load_settings

__all__ = [
    "BatchEntryDef",
    "FieldMappingDef",
    "TransformerSettings",
    "compute_checksum",
    "load_batch_document",
    "load_field_mapping_document",
    "load_settings",
    "load_yaml_file",
    "parse_field_mapping_def",
    "parse_field_mapping_document",
]
