"""Connector attributing database queries to endpoints and tables."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .config import LineageConfig, MatchSignal
from .logger import get_logger
from .models import (
    DatabaseQuery,
    EdgeType,
    Endpoint,
    LineageEdge,
    NodeType,
    Table,
    make_edge_id,
    make_node_id,
)

ANONYMOUS_HANDLER = "anonymous"


@dataclass
class BackendDatabaseMatch:
    """A scored attribution of a query to an endpoint."""
    endpoint: Endpoint
    query: DatabaseQuery
    confidence: float
    reason: str
    signals: Dict[str, float] = field(default_factory=dict)


class BackendDatabaseConnector:
    """
    Connects backend endpoints to the queries they run and queries to tables.

    Endpoint/query attribution is heuristic and compounds three signals:
    same source file, same handler function, and the query sitting shortly
    after the endpoint definition in that file. Query/table edges are checked
    against the known schema and always carry full confidence.
    """

    def __init__(self, config: Optional[LineageConfig] = None):
        self.config = config or LineageConfig()
        self.logger = get_logger()

    def connect(self, endpoints: List[Endpoint], queries: List[DatabaseQuery]) -> List[BackendDatabaseMatch]:
        """
        Attribute queries to endpoints.

        Args:
            endpoints: Backend endpoint definitions
            queries: Database queries found in backend code

        Returns:
            One match per (endpoint id, query id) pair with positive
            confidence; records sharing ids keep their best-scoring pair
        """
        best: Dict[Tuple[str, str], BackendDatabaseMatch] = {}

        for endpoint in endpoints:
            candidates = [q for q in queries if q.file == endpoint.file]
            if self._has_named_handler(endpoint):
                candidates.extend(q for q in queries if q.function == endpoint.handler)

            for query in candidates:
                match = self.match(endpoint, query)
                if match is None:
                    continue
                key = (endpoint.id, query.id)
                existing = best.get(key)
                if existing is None or match.confidence > existing.confidence:
                    best[key] = match

        matches = [best[key] for key in sorted(best)]

        self.logger.debug(
            f"Backend/database matching: {len(endpoints)} endpoints x {len(queries)} queries "
            f"-> {len(matches)} matches"
        )
        return matches

    def match(self, endpoint: Endpoint, query: DatabaseQuery) -> Optional[BackendDatabaseMatch]:
        """Score a single (endpoint, query) pair."""
        signals: Dict[str, float] = {}
        reasons: List[str] = []

        same_file = bool(endpoint.file) and endpoint.file == query.file
        if same_file:
            signals[MatchSignal.SAME_FILE.value] = self.config.weight(MatchSignal.SAME_FILE)
            reasons.append("same file")

        if self._has_named_handler(endpoint) and endpoint.handler == query.function:
            signals[MatchSignal.SAME_FUNCTION.value] = self.config.weight(MatchSignal.SAME_FUNCTION)
            reasons.append("same function")

        if same_file and endpoint.line and query.line:
            distance = query.line - endpoint.line
            if 0 < distance < self.config.max_line_distance:
                signals[MatchSignal.LINE_PROXIMITY.value] = self.config.weight(MatchSignal.LINE_PROXIMITY)
                reasons.append("nearby lines")

        confidence = round(min(1.0, sum(signals.values())), 4)
        if confidence <= 0:
            return None

        reason = ", ".join(reasons)
        return BackendDatabaseMatch(
            endpoint=endpoint,
            query=query,
            confidence=confidence,
            reason=reason[0].upper() + reason[1:],
            signals=signals,
        )

    def create_edges(self, matches: List[BackendDatabaseMatch]) -> List[LineageEdge]:
        """Create endpoint -> query ``database-query`` edges from matches."""
        edges = []
        for match in matches:
            source = make_node_id(NodeType.ENDPOINT, match.endpoint.id)
            target = make_node_id(NodeType.DATABASE_QUERY, match.query.id)
            edges.append(LineageEdge(
                id=make_edge_id(source, target),
                source=source,
                target=target,
                type=EdgeType.DATABASE_QUERY,
                confidence=match.confidence,
                label=f"{match.query.type} {match.query.table or ''}".strip(),
                data={
                    "queryType": match.query.type,
                    "table": match.query.table,
                    "ormMethod": match.query.orm_method,
                    "reason": match.reason,
                    "signals": dict(match.signals),
                },
            ))
        return edges

    def connect_queries_to_tables(self, queries: List[DatabaseQuery], tables: List[Table]) -> List[LineageEdge]:
        """
        Create schema-verified query -> table edges.

        Table names are compared case-insensitively; each edge targets the
        id of the existing table node. When several tables differ only in
        case, the lexicographically smallest name is used.
        """
        table_names: Dict[str, str] = {}
        for table in tables:
            key = table.name.lower()
            if key not in table_names or table.name < table_names[key]:
                table_names[key] = table.name
        table_ids = {
            key: (make_node_id(NodeType.TABLE, name), name) for key, name in table_names.items()
        }

        edges = []
        seen = set()
        for query in queries:
            source = make_node_id(NodeType.DATABASE_QUERY, query.id)
            for name in query.table_names():
                resolved = table_ids.get(name.lower())
                if resolved is None:
                    continue
                target, table_name = resolved
                edge_id = make_edge_id(source, target)
                if edge_id in seen:
                    continue
                seen.add(edge_id)
                edges.append(LineageEdge(
                    id=edge_id,
                    source=source,
                    target=target,
                    type=EdgeType.DATABASE_QUERY,
                    confidence=self.config.schema_edge_confidence,
                    label=f"{query.type} {table_name}",
                    data={
                        "queryType": query.type,
                        "table": table_name,
                        "verified": True,
                    },
                ))
        return edges

    @staticmethod
    def _has_named_handler(endpoint: Endpoint) -> bool:
        return bool(endpoint.handler) and endpoint.handler != ANONYMOUS_HANDLER
