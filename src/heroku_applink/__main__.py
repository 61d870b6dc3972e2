"""Entry point for ``python -m heroku_applink`` and the ``heroku-applink`` script."""

from __future__ import annotations

import sys

from .cli import cli

PROG_NAME = "heroku-applink"


def _use_utf8_streams() -> None:
    # Unencodable characters are escaped rather than raising
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is None:
            continue
        try:
            reconfigure(encoding="utf-8", errors="backslashreplace")
        except ValueError:
            continue


def main() -> None:
    _use_utf8_streams()
    cli(prog_name=PROG_NAME)


if __name__ == "__main__":
    main()
