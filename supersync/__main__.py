#!/usr/bin/env python3
"""
Enable running supersync via: python -m supersync

Usage:
    python -m supersync sync VAULT notes/A.md
    python -m supersync watch VAULT
"""

import sys

from supersync.cli import main

if __name__ == "__main__":
    sys.exit(main())
