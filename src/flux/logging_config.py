import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "flux"


def configure_logging(level: str = "WARNING", verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """
    Attach a RichHandler to the package logger.

    Safe to call more than once: the handler is only installed the first
    time, later calls just adjust the level.

    Args:
        level: Level name from settings (e.g. 'INFO')
        verbose: Force DEBUG regardless of `level`
        console: Console to log to, defaults to stderr

    Returns:
        The configured 'flux' logger
    """
    logger = logging.getLogger(LOGGER_NAME)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel(logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING))
    return logger
