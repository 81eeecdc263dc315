"""
Logging for dapr-core.

dapr-core logs only through ``loguru.logger``: request lines and bulk item
errors at DEBUG, pool recycling at DEBUG, sidecar unavailability at WARNING.
It never installs sinks on import. Applications that want those records,
together with the connection-level logging of httpx and httpcore (which use
the standard library), call ``setup_logging`` once at startup.
"""

import logging
import sys
from typing import Iterable

from loguru import logger

# Standard library loggers used underneath the sidecar transport
HTTP_LOGGERS = ("httpx", "httpcore")


class InterceptHandler(logging.Handler):
    """
    Forward standard library log records to loguru, keeping the caller location.
    See: https://loguru.readthedocs.io/en/stable/overview.html#entirely-compatible-with-standard-logging
    """

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real origin
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", intercept: Iterable[str] = HTTP_LOGGERS):
    """
    Send loguru output to stdout and route the HTTP stack's logging into it.

    Args:
        level: Minimum level for the stdout sink. Use "DEBUG" to see every
            sidecar request.
        intercept: Standard library logger names to forward to loguru.
    """
    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in intercept:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    logger.debug(f"dapr-core logging initialized at {level}")
