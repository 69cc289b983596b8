"""
Module entrypoint for the SaveKeep CLI.

This file exists so that `python -m savekeep ...` works when the console-script
wrapper is not installed. It contains no business logic.
"""

from __future__ import annotations

from savekeep.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
