"""
Configuration Loader (``refuse_config.loader``).

Responsibility
--------------
Loads mapping and batch documents (YAML, or JSON which is a YAML subset)
and parses them into ``refuse_config.schema`` dataclasses.

Architecture position
---------------------
**Config layer**.  Consumed by the transformation engine
(``TransformationEngine.load_field_mappings``) and the command-line tool.
Depends on the kernel only for ``ConfigurationError``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Structural problems raise ``ConfigurationError`` naming the entity type
  and entry position; nothing is silently skipped.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML/JSON  -> ``yaml.YAMLError`` propagates.
* Wrong document shape  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from refuse_kernel.exceptions import ConfigurationError

from refuse_config.schema import BatchEntryDef, FieldMappingDef


def load_yaml_file(path: str | Path) -> Any:
    """
    Load a single YAML (or JSON) file.

    Postconditions:
        - Returns the parsed document; an empty file yields ``{}``.
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        document = yaml.safe_load(f)
    return {} if document is None else document


def _as_bool(value: Any, where: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "0"):
        return False
    raise ConfigurationError(f"{where}: expected a boolean, got {value!r}")


def parse_field_mapping_def(
    data: Any,
    entity_type: str | None = None,
    position: int = 0,
) -> FieldMappingDef:
    """
    Parse one mapping entry.

    Accepts both ``defaultValue`` and ``default_value`` for the default.

    Raises:
        ConfigurationError: entry is not a mapping or lacks source/target.
    """
    where = f"{entity_type or 'mapping'}[{position}]"
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where}: mapping entry must be an object", entity_type)
    for key in ("source", "target"):
        if not isinstance(data.get(key), str) or not data[key].strip():
            raise ConfigurationError(f"{where}: missing {key!r}", entity_type)

    default = data.get("defaultValue", data.get("default_value"))
    transform = data.get("transform")
    if transform is not None and not isinstance(transform, str):
        raise ConfigurationError(f"{where}: transform must be a name", entity_type)
    return FieldMappingDef(
        source=data["source"].strip(),
        target=data["target"].strip(),
        required=_as_bool(data.get("required", False), where),
        default_value=default,
        transform=transform,
    )


def parse_field_mapping_document(document: Any) -> dict[str, tuple[FieldMappingDef, ...]]:
    """``{entity_type: [entry, ...]}`` -> parsed definitions, order kept."""
    if not isinstance(document, dict):
        raise ConfigurationError("Field mapping document must be keyed by entity type")
    parsed: dict[str, tuple[FieldMappingDef, ...]] = {}
    for entity_type, entries in document.items():
        name = str(entity_type)
        if not isinstance(entries, list):
            raise ConfigurationError(f"{name}: mappings must be a list", name)
        parsed[name] = tuple(
            parse_field_mapping_def(entry, name, i) for i, entry in enumerate(entries)
        )
    return parsed


def load_field_mapping_document(path: str | Path) -> dict[str, tuple[FieldMappingDef, ...]]:
    return parse_field_mapping_document(load_yaml_file(path))


def parse_batch_entry(entity_type: str, data: Any) -> BatchEntryDef:
    """
    Parse ``{enabled, inputFile, mappingFile, outputFile}`` for one entity type.

    Snake-case keys (``input_file`` ...) are accepted too.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"{entity_type}: batch entry must be an object", entity_type)

    def _get(camel: str, snake: str) -> str | None:
        value = data.get(camel, data.get(snake))
        return None if value is None else str(value)

    return BatchEntryDef(
        entity_type=entity_type,
        enabled=_as_bool(data.get("enabled", True), entity_type),
        input_file=_get("inputFile", "input_file"),
        mapping_file=_get("mappingFile", "mapping_file"),
        output_file=_get("outputFile", "output_file"),
    )


def load_batch_document(path: str | Path) -> tuple[BatchEntryDef, ...]:
    """
    Raises:
        ConfigurationError: document is not keyed by entity type, or an
            enabled entry has no input file.
    """
    document = load_yaml_file(path)
    if not isinstance(document, dict):
        raise ConfigurationError(f"Batch document {path} must be keyed by entity type")
    entries = tuple(parse_batch_entry(str(k), v) for k, v in document.items())
    for entry in entries:
        if entry.enabled and not entry.input_file:
            raise ConfigurationError(
                f"{entry.entity_type}: enabled batch entry needs inputFile",
                entry.entity_type,
            )
    return entries


def compute_checksum(data: Any) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
