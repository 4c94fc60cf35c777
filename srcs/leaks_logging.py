"""
Logging setup for Leakscope.

All modules log under the "leakscope" logger family. The CLI attaches a
single rich handler writing to stderr so that stdout stays clean for
JSON and raw output.
"""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "leakscope"


def get_logger(component: str) -> logging.Logger:
    """Return the logger of one component, e.g. get_logger("parser")."""
    return logging.getLogger(f"{LOGGER_NAME}.{component}")


def setup_logger(level: Union[int, str] = logging.WARNING,
                 name: str = LOGGER_NAME,
                 console: Optional[Console] = None) -> logging.Logger:
    """
    Configure the Leakscope logger.

    Args:
        level: Logging level, as int or name ("DEBUG", "INFO", ...).
        name: Logger to configure. Component loggers propagate to it.
        console: Console the handler writes to. Defaults to stderr.

    Returns:
        The configured logger.
    """

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger
