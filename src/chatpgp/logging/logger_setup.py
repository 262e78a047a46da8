"""Logging configuration and setup utilities for chatpgp.

Provides file rotation, console output and a runtime debug switch that
follows the ``log_debug`` policy toggle.
"""

import logging
import logging.config
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

PACKAGE_LOGGER = "chatpgp"
LOG_DIR_ENV = "CHATPGP_LOG_DIR"


class LoggerConfigError(Exception):
    """Custom exception for logger configuration errors."""


@dataclass
class LoggingConfig:
    """Configuration for logging setup."""

    log_name: str = PACKAGE_LOGGER
    log_filename: str | None = None
    log_level: str = "INFO"
    log_dir: Path | None = None
    max_bytes: int = 2 * 1024 * 1024  # 2 MB
    backup_count: int = 3
    enable_console: bool = True
    enable_file: bool = True


def validate_log_level(log_level: str) -> int:
    """Validate and return the numeric log level."""
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        error_msg = f"Invalid log level: {log_level}"
        raise LoggerConfigError(error_msg)
    return numeric_level


def get_default_log_dir() -> Path:
    """Get the default log directory, honouring ``CHATPGP_LOG_DIR``."""
    override = os.getenv(LOG_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".local" / "log" / "chatpgp"


def create_logging_config(config: LoggingConfig) -> dict[str, Any]:
    """Create the ``dictConfig`` dictionary for the given configuration."""
    numeric_level = validate_log_level(config.log_level)

    handlers: dict[str, dict[str, Any]] = {}

    if config.enable_file:
        log_dir = get_default_log_dir() if config.log_dir is None else config.log_dir
        log_filename = config.log_filename or f"{config.log_name}.log"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            error_msg = f"Failed to create log directory {log_dir}: {e}"
            raise LoggerConfigError(error_msg) from e

        handlers["file_handler"] = {
            "level": numeric_level,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_dir / log_filename),
            "maxBytes": config.max_bytes,
            "backupCount": config.backup_count,
            "formatter": "detailed",
            "encoding": "utf8",
        }

    if config.enable_console:
        handlers["console_handler"] = {
            "level": numeric_level,
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s %(levelname)s %(name)s:%(lineno)d: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            config.log_name: {
                "handlers": list(handlers.keys()),
                "level": numeric_level,
                "propagate": False,
            },
        },
    }


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Configure logging for the application.

    Args:
        config: Logging configuration object

    Returns:
        Configured logger instance

    """
    try:
        logging.config.dictConfig(create_logging_config(config))
        logger = logging.getLogger(config.log_name)
        logger.debug(
            f"Logging configured for '{config.log_name}' at level {config.log_level}",
        )
    except (LoggerConfigError, ValueError, KeyError):
        # Fallback to basic console logging if configuration fails
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logger = logging.getLogger(config.log_name)
        logger.exception("Failed to configure logging. Using fallback configuration.")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance. If nothing is configured, uses basic configuration.

    Args:
        name: Name of the logger

    Returns:
        Logger instance

    """
    logger = logging.getLogger(name)

    parent_logger = logger.parent
    if not logger.handlers and (parent_logger is None or not parent_logger.handlers):
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    return logger


def set_debug_logging(enabled: bool, log_name: str = PACKAGE_LOGGER) -> None:
    """Switch the package logger and its handlers between DEBUG and INFO."""
    level = logging.DEBUG if enabled else logging.INFO
    logger = logging.getLogger(log_name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
