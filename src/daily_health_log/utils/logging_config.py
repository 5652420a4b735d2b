"""
Logging configuration and utilities.

Installs the application handlers on the package logger and, when SQL echo
is enabled, routes SQLAlchemy's engine log through the same handlers.
"""

import logging
import sys
from pathlib import Path

from daily_health_log.utils.parameters import LoggingConfig

SQL_LOGGER_NAME = "sqlalchemy.engine"


def _build_handlers(config: LoggingConfig, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(config.format)
    handlers: list[logging.Handler] = []

    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    config: LoggingConfig, logger_name: str | None = None, sql_echo: bool = False
) -> logging.Logger:
    """
    Set up logging for the application.

    Args:
        config: Logging configuration.
        logger_name: Optional logger name. If None, returns root logger.
        sql_echo: Log every SQL statement (the storage.echo setting).

    Returns:
        Configured logger instance.
    """
    level = getattr(logging, config.level.upper())
    handlers = _build_handlers(config, level)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in handlers:
        logger.addHandler(handler)

    sql_logger = logging.getLogger(SQL_LOGGER_NAME)
    sql_logger.handlers.clear()
    if sql_echo:
        sql_logger.setLevel(logging.INFO)
        sql_logger.propagate = False
        for handler in handlers:
            sql_logger.addHandler(handler)
            # Statements are logged at INFO whatever the application level
            handler.setLevel(min(level, logging.INFO))
    else:
        sql_logger.setLevel(logging.WARNING)
        sql_logger.propagate = True

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance by name.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
