"""Unit tests for logging setup."""

import logging
from pathlib import Path

from daily_health_log.utils.logging_config import SQL_LOGGER_NAME, setup_logging
from daily_health_log.utils.parameters import LoggingConfig


def test_file_handler_and_sql_echo(tmp_path: Path) -> None:
    """Test that SQL echo is written through the application log file."""
    log_file = tmp_path / "logs" / "app.log"
    config = LoggingConfig(level="WARNING", console=False, file=str(log_file))

    logger = setup_logging(config, "daily_health_log.test", sql_echo=True)
    logger.warning("application message")
    logging.getLogger(SQL_LOGGER_NAME).info("SELECT 1")

    for handler in logger.handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    if "application message" not in content or "SELECT 1" not in content:
        raise AssertionError(f"Expected both messages in the log file, got: {content}")

    setup_logging(config, "daily_health_log.test", sql_echo=False)
    sql_logger = logging.getLogger(SQL_LOGGER_NAME)

    if sql_logger.handlers or sql_logger.isEnabledFor(logging.INFO):
        raise AssertionError("Expected SQL statements to be silent without echo")

    for handler in logging.getLogger("daily_health_log.test").handlers:
        handler.close()
