"""Logging utilities tailored for crossword generation."""

from __future__ import annotations

import logging
from typing import Optional


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging with a sensible formatter.

    Generation runs many placement attempts per puzzle, so per-word detail is
    emitted at DEBUG and per-puzzle summaries at INFO. Callers may configure
    logging themselves before invoking :class:`CrosswordGenerator`.
    """

    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a namespaced logger without touching global configuration."""

    return logging.getLogger(name or "vocab_crossword")
