"""Logging configuration using loguru.

The bridge and its clients log through loguru.  uvicorn and websockets log
through stdlib logging, so their records are intercepted into the same sink.
Below DEBUG their per-frame and per-handshake chatter is held back to
warnings; bridge-level connection events are logged by the bridge itself.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

_TRANSPORT_LOGGERS = (
    "uvicorn.access",  # one line per REST call
    "uvicorn.error",  # handshake failures of rejected or timed-out sockets
    "websockets.client",
    "websockets.server",  # one line per frame
)


class _StdlibToLoguru(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the caller, not the logging module
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO") -> None:
    """Make loguru the only sink, at *level*.

    Called from the app lifespan and from the ``student`` command.  At
    ``DEBUG`` the transport loggers are left verbose for protocol debugging.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=_FORMAT)

    logging.basicConfig(handlers=[_StdlibToLoguru()], level=0, force=True)

    transport_level = logging.NOTSET if level in ("TRACE", "DEBUG") else logging.WARNING
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

    logger.debug("Logging configured (level={})", level)
