"""Exception hierarchy for lineage building and impact analysis."""

from typing import Any, Dict, Optional


class LineageError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a dictionary."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ChangeRequestValidationError(LineageError, ValueError):
    """A change request could not be validated."""


class ConfigurationError(LineageError, ValueError):
    """Invalid configuration values."""
