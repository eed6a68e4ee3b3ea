"""Configuration settings for lineage building and impact analysis."""

import os
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Any, Optional

from .exceptions import ConfigurationError


class MatchSignal(str, Enum):
    """Evidence that contributes confidence to an inferred edge."""
    METHOD_MATCH = "method_match"
    EXACT_URL = "exact_url"
    URL_CONTAINS = "url_contains"
    PATH_ONLY = "path_only"
    PARAM_PATH_REGEX = "param_path_regex"
    EXACT_PATTERN = "exact_pattern"
    PATTERN_STRUCTURE = "pattern_structure"
    PATH_PARAM_COUNT = "path_param_count"
    SAME_FILE = "same_file"
    SAME_FUNCTION = "same_function"
    LINE_PROXIMITY = "line_proximity"


DEFAULT_SIGNAL_WEIGHTS: Dict[MatchSignal, float] = {
    MatchSignal.METHOD_MATCH: 0.3,
    MatchSignal.EXACT_URL: 0.5,
    MatchSignal.URL_CONTAINS: 0.4,
    MatchSignal.PATH_ONLY: 0.45,
    MatchSignal.PARAM_PATH_REGEX: 0.35,
    MatchSignal.EXACT_PATTERN: 0.4,
    MatchSignal.PATTERN_STRUCTURE: 0.3,
    MatchSignal.PATH_PARAM_COUNT: 0.2,
    MatchSignal.SAME_FILE: 0.4,
    MatchSignal.SAME_FUNCTION: 0.5,
    MatchSignal.LINE_PROXIMITY: 0.1,
}

LOG_LEVEL_ENV = "LINEAGE_IMPACT_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_UNIT_INTERVAL_FIELDS = ("min_api_confidence", "schema_edge_confidence")
_NON_NEGATIVE_FIELDS = (
    "max_line_distance",
    "impact_max_depth",
    "complexity_high_files",
    "complexity_high_nodes",
    "complexity_medium_files",
    "complexity_medium_nodes",
    "hours_per_file",
    "hours_per_breaking_change",
    "large_impact_threshold",
    "max_listed_tests",
    "max_nodes",
    "max_edges",
)


def _default_weights() -> Dict[MatchSignal, float]:
    return dict(DEFAULT_SIGNAL_WEIGHTS)


@dataclass
class LineageConfig:
    """Configuration class for lineage graph and impact analysis settings."""

    # Connector scoring
    signal_weights: Dict[MatchSignal, float] = field(default_factory=_default_weights)
    min_api_confidence: float = 0.3
    max_line_distance: int = 100
    schema_edge_confidence: float = 1.0

    # Impact traversal and summary
    impact_max_depth: int = 3
    complexity_high_files: int = 20
    complexity_high_nodes: int = 50
    complexity_medium_files: int = 5
    complexity_medium_nodes: int = 10
    hours_per_file: int = 2
    hours_per_breaking_change: int = 4
    large_impact_threshold: int = 30
    max_listed_tests: int = 3

    # Graph settings
    max_nodes: int = 10000
    max_edges: int = 50000

    # None means: take LINEAGE_IMPACT_LOG_LEVEL, else INFO
    log_level: Optional[str] = None

    def __post_init__(self):
        """Validate values, normalize weights and apply environment overrides."""
        if self.log_level is None:
            self.log_level = os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {self.log_level}",
                details={"log_level": self.log_level, "allowed": list(LOG_LEVELS)},
            )

        for name in _UNIT_INTERVAL_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"{name} must be within [0, 1]", details={name: value}
                )
        for name in _NON_NEGATIVE_FIELDS:
            value = getattr(self, name)
            if value < 0:
                raise ConfigurationError(
                    f"{name} must not be negative", details={name: value}
                )

        weights = _default_weights()
        for key, value in self.signal_weights.items():
            try:
                signal = MatchSignal(key)
            except ValueError:
                raise ConfigurationError(
                    f"Unknown match signal: {key}", details={"signal": str(key)}
                )
            if not 0.0 <= float(value) <= 1.0:
                raise ConfigurationError(
                    f"Weight for {signal.value} must be within [0, 1]",
                    details={"signal": signal.value, "weight": value},
                )
            weights[signal] = float(value)
        self.signal_weights = weights

    def weight(self, signal: MatchSignal) -> float:
        """Return the configured weight for a match signal."""
        return self.signal_weights[signal]

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "signal_weights":
                value = {signal.value: weight for signal, weight in value.items()}
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "LineageConfig":
        """Create configuration from dictionary."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_dict) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                details={"keys": unknown},
            )
        return cls(**config_dict)
