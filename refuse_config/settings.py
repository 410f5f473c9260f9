"""
Transformer settings: defaults < optional YAML file < environment.

Environment variables:
    REFUSE_OUTPUT_DIR         output directory for data, reports and metrics
    REFUSE_STRICT_CODES       true/false; unrecognised codes fail the record
    REFUSE_PROGRESS_INTERVAL  records between batch progress log lines
    REFUSE_LOG_LEVEL          DEBUG, INFO, WARNING, ERROR
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping

from refuse_kernel.exceptions import ConfigurationError

from refuse_config.loader import load_yaml_file
from refuse_config.schema import TransformerSettings

ENV_PREFIX = "REFUSE_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{name}: expected a boolean, got {value!r}")


def _parse_interval(name: str, value: Any) -> int:
    try:
        interval = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name}: expected an integer, got {value!r}") from exc
    if interval < 1:
        raise ConfigurationError(f"{name}: must be at least 1, got {interval}")
    return interval


def _parse_level(name: str, value: Any) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ConfigurationError(f"{name}: unknown log level {value!r}")
    return level


_FIELDS = {
    "output_dir": lambda name, value: str(value),
    "strict_codes": _parse_bool,
    "progress_interval": _parse_interval,
    "log_level": _parse_level,
}


def apply_overrides(
    settings: TransformerSettings,
    values: Mapping[str, Any],
    source: str,
) -> TransformerSettings:
    """Return ``settings`` with every known key in ``values`` applied."""
    changes: dict[str, Any] = {}
    for key, value in values.items():
        parser = _FIELDS.get(key)
        if parser is None:
            raise ConfigurationError(f"{source}: unknown setting {key!r}")
        if value is not None:
            changes[key] = parser(f"{source}:{key}", value)
    return replace(settings, **changes)


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> TransformerSettings:
    """
    Raises:
        ConfigurationError: unknown key or invalid value.
        FileNotFoundError: ``path`` given but missing.
    """
    settings = TransformerSettings()
    if path is not None:
        document = load_yaml_file(path)
        if not isinstance(document, dict):
            raise ConfigurationError(f"Settings file {path} must be a mapping")
        settings = apply_overrides(settings, document, str(path))

    env = os.environ if environ is None else environ
    from_env = {
        key: env[ENV_PREFIX + key.upper()]
        for key in _FIELDS
        if env.get(ENV_PREFIX + key.upper())
    }
    return apply_overrides(settings, from_env, "environment")
