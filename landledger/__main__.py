"""LANDLEDGER CLI entry point — python -m landledger"""

from __future__ import annotations

import sys

from landledger.cli import main


if __name__ == "__main__":
    sys.exit(main())
