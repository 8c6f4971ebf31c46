"""Structured logging for the tunnel, built on structlog."""

import logging
import sys

import structlog
from structlog.typing import Processor

# asyncssh logs every channel open/close at INFO
ASYNCSSH_LOGGER = "asyncssh"


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
    asyncssh_level: str = "WARNING",
) -> None:
    """Configure structured logging for the tunnel.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON formatted logs
        log_file: Optional file path to write logs to
        asyncssh_level: Logging level applied to the asyncssh library logger
    """
    log_level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    logging.getLogger(ASYNCSSH_LOGGER).setLevel(
        getattr(logging, asyncssh_level.upper())
    )

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to ``name`` (usually ``__name__``)."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
