"""
Executable module for tarlink.

Running:
    python -m tarlink

is equivalent to:
    tarlink
"""

from __future__ import annotations

import sys

from tarlink.cli import main

if __name__ == "__main__":
    sys.exit(main())
