"""
Centralized logging setup for the search API.

Handlers are attached to the "search_api" package logger rather than the
root logger, so applications embedding the package keep control of their
own logging. Records still propagate to the root logger.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


_logger_initialized = False

PACKAGE_LOGGER = "search_api"
LOG_FILENAME = "search_api.log"


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    logs_directory: Path = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    console: bool = True
) -> logging.Logger:
    """
    Initialize the package logger with console and optional file handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Format string for log messages.
        logs_directory: Directory for log files. If None, file logging disabled.
        max_file_size_mb: Maximum size of each log file in MB.
        backup_count: Number of backup files to keep.
        console: Whether to also log to stdout.

    Returns:
        The package logger.
    """
    global _logger_initialized

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _logger_initialized:
        return package_logger

    package_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    formatter = logging.Formatter(log_format)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    if logs_directory:
        logs_directory = Path(logs_directory)
        logs_directory.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            logs_directory / LOG_FILENAME,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    _logger_initialized = True
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Initializes the package logger from the configuration on first call,
    falling back to built-in defaults when no config.json can be found.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        Logger instance.
    """
    if not _logger_initialized:
        from .config_loader import get_config_or_defaults
        from .exceptions import ConfigurationError
        try:
            config = get_config_or_defaults()
        except ConfigurationError:
            # An invalid config is reported by the components that need it.
            setup_logging()
            return logging.getLogger(name)
        try:
            setup_logging(
                log_level=config.logging.level,
                log_format=config.logging.format,
                logs_directory=config.paths.logs_directory,
                max_file_size_mb=config.logging.max_file_size_mb,
                backup_count=config.logging.backup_count
            )
        except OSError:
            # Unwritable logs directory. The console handler is already attached.
            setup_logging(log_level=config.logging.level, log_format=config.logging.format, console=False)

    return logging.getLogger(name)


if __name__ == "__main__":
    setup_logging(log_level="DEBUG")

    logger = get_logger("search_api.demo")
    logger.debug("Debug message")
    logger.info("Info message")
    logger.warning("Warning message")

    other_logger = get_logger("search_api.query")
    other_logger.info("Message from another logger")
