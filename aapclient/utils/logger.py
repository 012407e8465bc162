"""Logging setup for the AAP client."""

import logging
import logging.handlers
import structlog
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "aapclient"

# Silent until the application (or setup_logging) installs handlers
logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def setup_logging(log_level: str = "INFO",
                  log_file: Optional[str] = None,
                  max_size: int = 10485760,
                  backup_count: int = 5) -> logging.Logger:
    """
    Route the client's log output to the console and an optional file.

    Only the ``aapclient`` logger is configured, applications keep control of
    the root logger.

    Args:
        log_level: Logging level name
        log_file: Optional log file path
        max_size: Maximum log file size in bytes
        backup_count: Number of rotated files to keep

    Returns:
        The configured package logger
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    level = getattr(logging, log_level.upper())

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(log_format))
    package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=max_size,
            backupCount=backup_count
        )
        file_handler.setFormatter(logging.Formatter(log_format))
        package_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer() if log_level.upper() == "DEBUG" else structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return package_logger


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Events go through the stdlib logger of the same name, so they follow
    whatever handlers and levels the application configured.

    Args:
        name: Logger name, normally the calling module's ``__name__``

    Returns:
        Structured logger instance
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger
    )
