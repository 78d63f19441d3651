"""Logging setup shared by the API server and the CLI."""

from __future__ import annotations

import logging
import sys

from osint_graph.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str | None = None, debug: bool = False) -> None:
    """Configure the root logger with a single stderr handler.

    ``debug`` wins over ``level``; ``level`` falls back to
    ``settings.log_level``.  Safe to call more than once.
    """
    if debug:
        resolved = logging.DEBUG
    else:
        resolved = logging.getLevelName((level or settings.log_level).upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_osint_graph", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._osint_graph = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(resolved)
