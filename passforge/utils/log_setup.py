"""Logging setup for the CLI entry point."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "WARNING") -> None:
    """Route ``passforge`` loggers to stderr at ``level``.

    Library code only creates module loggers; handlers are installed here so
    importing the package never changes the host application's logging.
    A handler from an earlier call is replaced so it follows the current
    ``sys.stderr``.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    root = logging.getLogger("passforge")
    root.setLevel(level)

    for existing in list(root.handlers):
        if getattr(existing, "_passforge", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._passforge = True  # type: ignore[attr-defined]
    root.addHandler(handler)
