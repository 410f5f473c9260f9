"""
Ingestion configuration schema.

Human-authored configuration artifacts parsed by ``refuse_config.loader``:
field mapping documents, batch run documents, and transformer settings.
All are frozen dataclasses carrying declarative data only; named transforms
are resolved into callables later by the mapping engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Field mappings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldMappingDef:
    """One ``{source, target, required?, defaultValue?, transform?}`` entry."""

    source: str
    target: str
    required: bool = False
    default_value: Any = None
    transform: str | None = None  # Registered transform name


# ---------------------------------------------------------------------------
# Batch runs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BatchEntryDef:
    """One entity type in a batch document."""

    entity_type: str
    enabled: bool = True
    input_file: str | None = None  # Relative to the batch input directory
    mapping_file: str | None = None  # Optional mapping override document
    output_file: str | None = None  # Relative to the output directory


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransformerSettings:
    """Process-level settings for the transformation tool."""

    output_dir: str = "output"
    strict_codes: bool = False
    progress_interval: int = 100
    log_level: str = "INFO"
