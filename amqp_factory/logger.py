"""Loguru integration.

The package logs through loguru. The py-amqp client logs through the
standard library; ``configure_stdlib_logging_interception`` routes those
records into loguru as well. Nothing here runs on import.
"""

import logging
from inspect import currentframe

from loguru import logger

AMQP_LOGGER_NAME = "amqp"


class InterceptHandler(logging.Handler):
    """Handler to intercept standard library logging and route to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Emit log record via Loguru."""
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = (currentframe(), 0)
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level,
            record.getMessage(),
        )


def configure_stdlib_logging_interception(
    name: str | None = AMQP_LOGGER_NAME,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """Route records of the stdlib logger ``name`` through Loguru.

    By default only the py-amqp client's logger is intercepted; pass
    ``name=None`` to intercept the root logger.
    """
    std_logger = logging.getLogger(name)
    if not any(isinstance(h, InterceptHandler) for h in std_logger.handlers):
        std_logger.addHandler(InterceptHandler())
    std_logger.setLevel(level)
    if name is not None:
        std_logger.propagate = False
    return std_logger
