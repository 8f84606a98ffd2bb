"""Logging setup for commonbin.

Commands log through ``logging`` as usual. The ``commonbin`` logger prints
INFO and above; the debug channel (``COMMON_BIN_DEBUG=1``) lowers it to DEBUG,
which also exposes full tracebacks from the top-level error handler.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "commonbin"


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach a Rich handler to the ``commonbin`` logger (once).

    Calling again only adjusts the level, so nested commands and tests can
    toggle the debug channel without stacking handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for handler in logger.handlers:
        if isinstance(handler, RichHandler):
            return logger

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=debug,
        markup=False,
        rich_tracebacks=True,
    )
    logger.addHandler(handler)
    logger.propagate = False
    return logger
