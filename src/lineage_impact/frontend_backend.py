"""Connector matching frontend API calls to backend endpoints."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import LineageConfig, MatchSignal
from .logger import get_logger
from .matching import (
    compare_pattern_structure,
    count_dynamic_segments,
    extract_path,
    match_path_pattern,
    normalize_path,
    normalize_path_pattern,
    normalize_url,
)
from .models import (
    APICall,
    EdgeType,
    Endpoint,
    LineageEdge,
    NodeType,
    make_edge_id,
    make_node_id,
)


@dataclass
class ConnectionMatch:
    """A scored pairing of an API call with an endpoint."""
    api_call: APICall
    endpoint: Endpoint
    confidence: float
    reasons: List[str] = field(default_factory=list)
    signals: Dict[str, float] = field(default_factory=dict)


class FrontendBackendConnector:
    """
    Matches outbound API calls to backend endpoints.

    Scoring is additive over named match signals:
    - HTTP method equality is required and contributes the base weight
    - the first URL tier that matches (exact, containment, path-only,
      parametrized route) contributes its weight
    - calls without a static URL are compared pattern to pattern
    - a matching count of path parameters adds a final bonus
    """

    def __init__(self, config: Optional[LineageConfig] = None):
        self.config = config or LineageConfig()
        self.logger = get_logger()

    def connect(self, api_calls: List[APICall], endpoints: List[Endpoint]) -> List[ConnectionMatch]:
        """
        Match every API call against every endpoint.

        Args:
            api_calls: Outbound calls found in frontend code
            endpoints: Backend endpoint definitions

        Returns:
            At most one match per call id, the one with the highest confidence
        """
        best: Dict[str, ConnectionMatch] = {}

        for call in api_calls:
            for endpoint in endpoints:
                match = self.match(call, endpoint)
                if match is None or match.confidence <= self.config.min_api_confidence:
                    continue

                existing = best.get(call.id)
                if existing is None or self._is_better(match, existing):
                    best[call.id] = match

        matches = sorted(best.values(), key=lambda m: (-m.confidence, m.api_call.id))
        self.logger.debug(
            f"Frontend/backend matching: {len(api_calls)} calls x {len(endpoints)} endpoints "
            f"-> {len(matches)} matches"
        )
        return matches

    def score(self, call: APICall, endpoint: Endpoint) -> float:
        """Confidence for a single pair; 0.0 when the pair cannot match."""
        match = self.match(call, endpoint)
        return match.confidence if match else 0.0

    def match(self, call: APICall, endpoint: Endpoint) -> Optional[ConnectionMatch]:
        """Score a single (call, endpoint) pair."""
        if call.method.upper() != endpoint.method.upper():
            return None

        signals: Dict[str, float] = {}
        reasons: List[str] = []

        signals[MatchSignal.METHOD_MATCH.value] = self.config.weight(MatchSignal.METHOD_MATCH)
        reasons.append("HTTP method matches")

        if call.url:
            signal = self._match_url(call.url, endpoint.path)
            if signal is not None:
                signals[signal.value] = self.config.weight(signal)
                reasons.append(f"URL matches: {call.url} -> {endpoint.path}")
        elif call.url_pattern:
            signal = self._match_pattern(call.url_pattern, endpoint.path_pattern or endpoint.path)
            if signal is not None:
                signals[signal.value] = self.config.weight(signal)
                reasons.append(
                    f"URL pattern matches: {call.url_pattern} -> {endpoint.path_pattern or endpoint.path}"
                )

        if self._parameters_compatible(call, endpoint):
            signals[MatchSignal.PATH_PARAM_COUNT.value] = self.config.weight(MatchSignal.PATH_PARAM_COUNT)
            reasons.append("Path parameters compatible")

        confidence = round(min(1.0, sum(signals.values())), 4)
        return ConnectionMatch(
            api_call=call,
            endpoint=endpoint,
            confidence=confidence,
            reasons=reasons,
            signals=signals,
        )

    def create_edges(self, matches: List[ConnectionMatch]) -> List[LineageEdge]:
        """Create ``api-call`` lineage edges from matches."""
        edges = []
        for match in matches:
            source = make_node_id(NodeType.API_CALL, match.api_call.id)
            target = make_node_id(NodeType.ENDPOINT, match.endpoint.id)
            edges.append(LineageEdge(
                id=make_edge_id(source, target),
                source=source,
                target=target,
                type=EdgeType.API_CALL,
                confidence=match.confidence,
                label=f"{match.api_call.method} {match.api_call.target}",
                data={
                    "method": match.api_call.method,
                    "url": match.api_call.target,
                    "reasons": list(match.reasons),
                    "signals": dict(match.signals),
                },
            ))
        return edges

    @staticmethod
    def _is_better(candidate: ConnectionMatch, current: ConnectionMatch) -> bool:
        if candidate.confidence != current.confidence:
            return candidate.confidence > current.confidence
        return candidate.endpoint.id < current.endpoint.id

    def _match_url(self, call_url: str, endpoint_path: str) -> Optional[MatchSignal]:
        """Return the first URL tier matching a static call URL."""
        normalized_call = normalize_url(call_url)
        normalized_endpoint = normalize_path(endpoint_path).lower()

        if normalized_call == normalized_endpoint:
            return MatchSignal.EXACT_URL

        if normalized_endpoint in normalized_call or normalized_call in normalized_endpoint:
            return MatchSignal.URL_CONTAINS

        call_path = normalize_path(extract_path(call_url)).lower()
        if call_path == normalized_endpoint:
            return MatchSignal.PATH_ONLY

        if match_path_pattern(call_path, normalized_endpoint):
            return MatchSignal.PARAM_PATH_REGEX

        return None

    def _match_pattern(self, call_pattern: str, endpoint_pattern: str) -> Optional[MatchSignal]:
        """Compare a dynamic call pattern with an endpoint route pattern."""
        call_normalized = normalize_path_pattern(normalize_path(extract_path(call_pattern)))
        endpoint_normalized = normalize_path_pattern(normalize_path(endpoint_pattern))

        if call_normalized == endpoint_normalized:
            return MatchSignal.EXACT_PATTERN

        if compare_pattern_structure(call_normalized, endpoint_normalized):
            return MatchSignal.PATTERN_STRUCTURE

        return None

    @staticmethod
    def _parameters_compatible(call: APICall, endpoint: Endpoint) -> bool:
        if not endpoint.parameters:
            return False
        return count_dynamic_segments(call.target) == endpoint.path_parameter_count()
