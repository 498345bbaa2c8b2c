#!/usr/bin/env python3
"""
Entry point for running fsm_merge as a module:
    python -m fsm_merge intervals data.csv
    python -m fsm_merge align fgm.csv scm.csv --remove --sync
"""

from .cli import main

if __name__ == "__main__":
    main()
