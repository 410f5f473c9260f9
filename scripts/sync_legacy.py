#!/usr/bin/env python3
"""
Sync the bundled sample legacy systems (or a directory export) and print
one line per operation.

Usage:
    python3 scripts/sync_legacy.py                       # wasteworks + trashflow samples
    python3 scripts/sync_legacy.py --export-dir exports/ --name acme
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync legacy systems through the transformation engine.")
    parser.add_argument("--export-dir", type=Path, default=None, help="Directory of per-collection files.")
    parser.add_argument("--name", default="file-export", help="System name for --export-dir.")
    parser.add_argument("--strict", action="store_true", help="Unrecognized codes fail the record.")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    from refuse_kernel.logging_config import configure_logging
    from refuse_ingestion.connectors import FileLegacyConnector, sample_connectors
    from refuse_ingestion.engine import build_reference_engine
    from refuse_ingestion.sync import LegacySystemBridge

    configure_logging()
    bridge = LegacySystemBridge(build_reference_engine(strict_codes=args.strict))
    if args.export_dir is not None:
        bridge.register_connector(FileLegacyConnector(args.name, args.export_dir))
    else:
        for connector in sample_connectors():
            bridge.register_connector(connector)

    all_ok = True
    for name in bridge.system_names:
        result = await bridge.sync(name)
        all_ok = all_ok and result.success
        print(f"{name}: {'OK' if result.success else 'FAILED'} ({result.total_duration_ms:.1f} ms)")
        for op in result.operations:
            status = "ok" if op.success else f"failed: {op.error}"
            print(f"  {op.operation:<22} records={op.record_count:<5} {status}")
    return 0 if all_ok else 1


def main() -> int:
    return asyncio.run(_run(_parse_args()))


if __name__ == "__main__":
    sys.exit(main())
