"""Logging setup for the docent CLI and worker.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the process entry point.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED = False

# Third-party loggers that are noisy at INFO.
_QUIET_LOGGERS = ("httpx", "LiteLLM", "sentence_transformers", "urllib3")


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Install a RichHandler on the root logger.

    Safe to call more than once; later calls only change the level.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        console: Rich console to write to (stderr by default).
    """
    global _CONFIGURED

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric)

    if not _CONFIGURED:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(handler)
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        _CONFIGURED = True
