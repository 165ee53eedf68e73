"""Module execution entrypoint for `python -m deskpilot.cli`."""

from __future__ import annotations

import sys

from deskpilot.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
