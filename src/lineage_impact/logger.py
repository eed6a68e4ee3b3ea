"""Logging configuration for lineage building and impact analysis."""

import logging
import os
import sys

from .config import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV, LOG_LEVELS
from .exceptions import ConfigurationError


class LineageLogger:
    """Logger configuration for the lineage impact package."""

    def __init__(self, name: str = "lineage_impact", level: str = DEFAULT_LOG_LEVEL):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        self.logger = logging.getLogger(name)
        self.set_level(level)

        # Avoid duplicate handlers
        if not self.logger.handlers:
            self._setup_handlers()

    def _setup_handlers(self):
        """Setup logging handlers."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(formatter)

        self.logger.addHandler(console_handler)

    def set_level(self, level: str):
        """Set the level; raises ConfigurationError for unknown level names."""
        name = level.upper()
        if name not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {level}",
                details={"log_level": level, "allowed": list(LOG_LEVELS)},
            )
        self.logger.setLevel(getattr(logging, name))

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self.logger.error(message, **kwargs)


def env_log_level() -> str:
    """Level named by LINEAGE_IMPACT_LOG_LEVEL, or INFO when unset or unknown."""
    level = (os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    return level if level in LOG_LEVELS else DEFAULT_LOG_LEVEL


# Global logger instance
_logger = LineageLogger(level=env_log_level())
if (os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper() not in LOG_LEVELS:
    _logger.warning(f"Ignoring unknown {LOG_LEVEL_ENV} value, using {DEFAULT_LOG_LEVEL}")


def get_logger() -> LineageLogger:
    """Get the global logger instance."""
    return _logger


def set_log_level(level: str):
    """Set the global log level."""
    _logger.set_level(level)
