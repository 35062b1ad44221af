"""Module entrypoint for running manualpress as ``python -m manualpress``."""

from __future__ import annotations

from manualpress.cli import main


if __name__ == "__main__":
    main()
