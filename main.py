#!/usr/bin/env python3
"""
vidscribe v1.0.0: main entry point.
Runs the command line from a source checkout without installing.
"""

import sys
from pathlib import Path

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from vidscribe.cli import main

if __name__ == "__main__":
    sys.exit(main())
