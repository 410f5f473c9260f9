"""
Command-line tool for legacy data transformation.

Usage:
    refuse-transform transform <entity-type> <input-file> [output-file]
                               [--mappings FILE] [--output-dir DIR] [--strict]
    refuse-transform batch <config-file> <input-dir>
    refuse-transform report [--clear]
    refuse-transform validate <mapping-file> <sample-data> [--entity-type TYPE]
    refuse-transform analyze <input-file> [--entity-type TYPE] [--mappings FILE]

Global options (before the command):
    --settings FILE   YAML settings file (see refuse_config.settings)
    --log-level LEVEL overrides REFUSE_LOG_LEVEL / the settings file

Metrics accumulate across invocations in
``<output-dir>/transformation-metrics.json``; ``report --clear`` resets them.

Exit codes: 0 when the command ran (even if some records failed),
1 on configuration or file-level errors.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from refuse_kernel.exceptions import ConfigurationError, SourceFormatError
from refuse_kernel.logging_config import configure_logging, get_logger

from refuse_config.loader import load_batch_document, load_field_mapping_document
from refuse_config.schema import TransformerSettings
from refuse_config.settings import apply_overrides, load_settings

from refuse_ingestion.adapters import read_records
from refuse_ingestion.analysis import analyze_file, render_source_profile
from refuse_ingestion.domain.types import BatchTransformationResult
from refuse_ingestion.engine import TransformationEngine, build_reference_engine
from refuse_ingestion.harness import render_mapping_test_report, run_mapping_test
from refuse_ingestion.metrics import MetricsRegistry
from refuse_ingestion.reporting import (
    generate_transformation_report,
    render_metrics_report,
    save_report,
    save_transformed_data,
)

logger = get_logger("ingestion.cli")

METRICS_FILE = "transformation-metrics.json"
MAPPING_SUFFIXES = (".yaml", ".yml", ".json")

# Failures that abort a command with exit code 1
FATAL_ERRORS = (
    ConfigurationError,
    SourceFormatError,
    FileNotFoundError,
    yaml.YAMLError,
    json.JSONDecodeError,
)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refuse-transform",
        description="Transform legacy waste-management exports into canonical entities.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--settings", type=Path, default=None, help="YAML settings file.")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("transform", help="Transform one file for one entity type.")
    p.add_argument("entity_type")
    p.add_argument("input_file", type=Path)
    p.add_argument("output_file", type=Path, nargs="?", default=None)
    p.add_argument("--mappings", type=Path, default=None, help="Field mapping document.")
    p.add_argument("--output-dir", type=Path, default=None, help="Output directory.")
    p.add_argument("--strict", action="store_true", help="Unrecognized codes fail the record.")

    p = sub.add_parser("batch", help="Transform every enabled entry of a batch document.")
    p.add_argument("config_file", type=Path)
    p.add_argument("input_dir", type=Path)
    p.add_argument("--output-dir", type=Path, default=None, help="Output directory.")
    p.add_argument("--strict", action="store_true", help="Unrecognized codes fail the record.")

    p = sub.add_parser("report", help="Show accumulated transformation metrics.")
    p.add_argument("--clear", action="store_true", help="Reset the metrics after showing them.")
    p.add_argument("--output-dir", type=Path, default=None, help="Output directory.")

    p = sub.add_parser("validate", help="Check a mapping document against sample data.")
    p.add_argument("mapping_file", type=Path)
    p.add_argument("sample_data", type=Path)
    p.add_argument("--entity-type", default=None, help="Only check this entity type.")

    p = sub.add_parser("analyze", help="Profile a legacy export before transforming it.")
    p.add_argument("input_file", type=Path)
    p.add_argument("--entity-type", default=None, help="Compare fields with this type's mappings.")
    p.add_argument("--mappings", type=Path, default=None, help="Field mapping document.")
    return parser


# ---------------------------------------------------------------------------
# Metrics persistence
# ---------------------------------------------------------------------------


def load_metrics(output_dir: Path) -> MetricsRegistry:
    path = output_dir / METRICS_FILE
    if not path.exists():
        return MetricsRegistry()
    with path.open(encoding="utf-8") as f:
        return MetricsRegistry.from_dict(json.load(f))


def save_metrics(registry: MetricsRegistry, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / METRICS_FILE
    with path.open("w", encoding="utf-8") as f:
        json.dump(registry.to_dict(), f, indent=2)
        f.write("\n")
    return path


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _output_dir(args: argparse.Namespace, settings: TransformerSettings) -> Path:
    return args.output_dir if getattr(args, "output_dir", None) else Path(settings.output_dir)


def _engine(
    args: argparse.Namespace,
    settings: TransformerSettings,
    metrics: MetricsRegistry,
) -> TransformationEngine:
    return build_reference_engine(
        metrics=metrics,
        strict_codes=settings.strict_codes or bool(getattr(args, "strict", False)),
        progress_interval=settings.progress_interval,
    )


def _sibling_mappings(input_file: Path, entity_type: str) -> Path | None:
    """``<entity-type>-mappings.{yaml,yml,json}`` next to the input file."""
    for suffix in MAPPING_SUFFIXES:
        candidate = input_file.parent / f"{entity_type}-mappings{suffix}"
        if candidate.is_file():
            return candidate
    return None


def _write_outputs(
    batch: BatchTransformationResult,
    output_file: Path,
) -> str:
    save_transformed_data(batch, output_file)
    report = generate_transformation_report(batch)
    save_report(report, output_file.with_suffix(".report.txt"))
    return report


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_transform(args: argparse.Namespace, settings: TransformerSettings) -> int:
    output_dir = _output_dir(args, settings)
    metrics = load_metrics(output_dir)
    engine = _engine(args, settings, metrics)

    mappings = args.mappings or _sibling_mappings(args.input_file, args.entity_type)
    if mappings is not None:
        engine.load_field_mappings(mappings)

    batch = engine.transform_file(args.input_file, args.entity_type)
    output_file = args.output_file or output_dir / f"{args.entity_type}-transformed.json"
    print(_write_outputs(batch, output_file), end="")
    print(f"Output saved to: {output_file}")
    save_metrics(metrics, output_dir)
    return 0


def cmd_batch(args: argparse.Namespace, settings: TransformerSettings) -> int:
    output_dir = _output_dir(args, settings)
    entries = load_batch_document(args.config_file)
    metrics = load_metrics(output_dir)
    base = _engine(args, settings, metrics)
    enabled = [e for e in entries if e.enabled]
    print(f"Starting batch transformation with {len(enabled)} entity types")

    # Resolve every mapping override before touching any input
    engines: dict[str, TransformationEngine] = {}
    for entry in enabled:
        engine = base.fork(metrics=metrics)
        if entry.mapping_file:
            engine.load_field_mappings(args.config_file.parent / entry.mapping_file)
        engines[entry.entity_type] = engine

    for entry in enabled:
        input_file = args.input_dir / (entry.input_file or "")
        batch = engines[entry.entity_type].transform_file(input_file, entry.entity_type)
        output_file = output_dir / (entry.output_file or f"{entry.entity_type}-transformed.json")
        _write_outputs(batch, output_file)
        print(
            f"{entry.entity_type}: {batch.successful_transformations}/{batch.total_records} "
            f"transformed -> {output_file}"
        )
    save_metrics(metrics, output_dir)
    print("Batch transformation complete")
    return 0


def cmd_report(args: argparse.Namespace, settings: TransformerSettings) -> int:
    output_dir = _output_dir(args, settings)
    metrics = load_metrics(output_dir)
    print(render_metrics_report(metrics), end="")
    if args.clear:
        metrics.clear()
        save_metrics(metrics, output_dir)
        print("Metrics cleared")
    return 0


def cmd_validate(args: argparse.Namespace, settings: TransformerSettings) -> int:
    document = load_field_mapping_document(args.mapping_file)
    entity_types = [args.entity_type] if args.entity_type else list(document)
    if not entity_types:
        raise ConfigurationError(f"No entity types in {args.mapping_file}")
    engine = _engine(args, settings, MetricsRegistry())
    engine.load_field_mappings(args.mapping_file)
    samples: list[Any] = read_records(args.sample_data)

    for entity_type in entity_types:
        report = run_mapping_test(engine, entity_type, samples)
        print(render_mapping_test_report(report), end="")
        if report.rows and report.rows[0].canonical_data is not None:
            print("Transformed data preview:")
            print(json.dumps(report.rows[0].canonical_data, indent=2, default=str))
    return 0


def cmd_analyze(args: argparse.Namespace, settings: TransformerSettings) -> int:
    mappings = None
    if args.entity_type:
        engine = _engine(args, settings, MetricsRegistry())
        if args.mappings:
            engine.load_field_mappings(args.mappings)
        if args.entity_type not in engine.entity_types:
            raise ConfigurationError(
                f"No field mappings registered for entity type {args.entity_type!r}",
                entity_type=args.entity_type,
            )
        mappings = engine.mappings_for(args.entity_type)
    profile = analyze_file(args.input_file, args.entity_type, mappings=mappings)
    print(render_source_profile(profile), end="")
    return 0


COMMANDS = {
    "transform": cmd_transform,
    "batch": cmd_batch,
    "report": cmd_report,
    "validate": cmd_validate,
    "analyze": cmd_analyze,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.settings)
        if args.log_level:
            settings = apply_overrides(settings, {"log_level": args.log_level}, "--log-level")
        configure_logging(level=settings.log_level)
        return COMMANDS[args.command](args, settings)
    except FATAL_ERRORS as exc:
        logger.error("command_failed", extra={"command": args.command, "error": str(exc)})
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
