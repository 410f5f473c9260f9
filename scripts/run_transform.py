#!/usr/bin/env python3
"""
Run the legacy transformation tool from a source checkout.

Equivalent to the ``refuse-transform`` console script.

Usage:
    python3 scripts/run_transform.py transform customer exports/customers.csv
    python3 scripts/run_transform.py batch config/batch.example.yaml exports/
    python3 scripts/run_transform.py report
    python3 scripts/run_transform.py validate config/field_mappings.yaml samples.json
"""

from __future__ import annotations

import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from refuse_ingestion.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
