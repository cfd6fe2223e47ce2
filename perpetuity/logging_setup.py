"""
Logging configuration for Perpetuity.

Library modules only create module-level loggers
(``logging.getLogger(__name__)``) and never configure handlers. Applications
call `configure_logging` once; the CLI does so at startup with the level from
`AppSettings` (``PERPETUITY_LOG_LEVEL`` / ``PERPETUITY_DEBUG``).
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import AppSettings

__all__ = ["configure_logging"]

_HANDLER_NAME = "perpetuity-rich"


def configure_logging(
    level: Optional[str] = None,
    *,
    settings: Optional[AppSettings] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Attach a rich handler to the ``perpetuity`` logger.

    Parameters
    ----------
    level : str, optional
        Overrides the level from *settings*.
    settings : AppSettings, optional
        Read when *level* is not given (defaults to a fresh `AppSettings()`).
    console : rich.console.Console, optional
        Destination console; defaults to stderr.

    Returns
    -------
    logging.Logger
        The configured package logger. Calling again replaces the handler
        instead of stacking a second one.
    """
    if level is None:
        level = (settings or AppSettings()).effective_log_level

    logger = logging.getLogger("perpetuity")
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
