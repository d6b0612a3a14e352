"""Module entrypoint for running Podvoice as ``python -m podvoice``."""

from __future__ import annotations

from podvoice.cli import main


if __name__ == "__main__":
    main()
