"""Core data models for the lineage graph and its extraction-layer inputs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import networkx as nx


def _pick(data: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read a key that may be spelled in snake_case or camelCase."""
    if snake in data:
        return data[snake]
    return data.get(camel, default)


# ---------------------------------------------------------------------------
# Extraction-layer records
# ---------------------------------------------------------------------------

@dataclass
class Component:
    """A UI component found in frontend code."""
    name: str
    file: str
    line: int = 0
    props: List[str] = field(default_factory=list)
    type: str = "functional"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Component":
        return cls(
            name=data["name"],
            file=data.get("file", ""),
            line=data.get("line") or 0,
            props=list(data.get("props") or []),
            type=data.get("type", "functional"),
        )


@dataclass
class APICall:
    """An outbound HTTP call made by frontend code."""
    id: str
    file: str
    method: str
    url: Optional[str] = None
    url_pattern: Optional[str] = None  # set when the URL is built dynamically
    line: int = 0
    function: Optional[str] = None

    @property
    def target(self) -> str:
        return self.url or self.url_pattern or ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "APICall":
        return cls(
            id=str(data["id"]),
            file=data.get("file", ""),
            method=str(data.get("method", "GET")).upper(),
            url=data.get("url"),
            url_pattern=_pick(data, "url_pattern", "urlPattern"),
            line=data.get("line") or 0,
            function=data.get("function"),
        )


@dataclass
class EndpointParameter:
    """A declared endpoint parameter."""
    name: str
    type: str = "path"  # path, query, body, header
    required: bool = True


@dataclass
class Endpoint:
    """A backend HTTP endpoint definition."""
    id: str
    file: str
    method: str
    path: str
    path_pattern: str = ""
    handler: str = ""
    parameters: List[EndpointParameter] = field(default_factory=list)
    line: int = 0

    def path_parameter_count(self) -> int:
        return len([p for p in self.parameters if p.type == "path"])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Endpoint":
        parameters = []
        for param in data.get("parameters") or []:
            if isinstance(param, EndpointParameter):
                parameters.append(param)
            elif isinstance(param, str):
                parameters.append(EndpointParameter(name=param))
            else:
                parameters.append(EndpointParameter(
                    name=param["name"],
                    type=param.get("type", "path"),
                    required=param.get("required", True),
                ))
        path = data.get("path", "")
        return cls(
            id=str(data["id"]),
            file=data.get("file", ""),
            method=str(data.get("method", "GET")).upper(),
            path=path,
            path_pattern=_pick(data, "path_pattern", "pathPattern") or path,
            handler=data.get("handler") or "",
            parameters=parameters,
            line=data.get("line") or 0,
        )


@dataclass
class DatabaseQuery:
    """A database access found in backend code."""
    id: str
    file: str
    type: str  # select, insert, update, delete, raw
    function: Optional[str] = None
    table: Optional[str] = None
    tables: List[str] = field(default_factory=list)
    line: int = 0
    orm_method: Optional[str] = None

    def table_names(self) -> List[str]:
        """All tables this query touches, primary table first, without duplicates."""
        names = []
        for name in ([self.table] if self.table else []) + list(self.tables):
            if name and name.lower() not in [n.lower() for n in names]:
                names.append(name)
        return names

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseQuery":
        return cls(
            id=str(data["id"]),
            file=data.get("file", ""),
            type=data.get("type", "raw"),
            function=data.get("function"),
            table=data.get("table"),
            tables=list(data.get("tables") or []),
            line=data.get("line") or 0,
            orm_method=_pick(data, "orm_method", "ormMethod"),
        )


@dataclass
class Column:
    """A table column."""
    name: str
    type: str = ""
    nullable: bool = True


@dataclass
class ForeignKey:
    """A foreign key constraint."""
    column: str
    referenced_table: str
    referenced_column: str


@dataclass
class Table:
    """A database table schema."""
    name: str
    columns: List[Column] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        columns = [
            c if isinstance(c, Column) else Column(
                name=c["name"], type=c.get("type", ""), nullable=c.get("nullable", True)
            )
            for c in data.get("columns") or []
        ]
        foreign_keys = [
            fk if isinstance(fk, ForeignKey) else ForeignKey(
                column=fk["column"],
                referenced_table=_pick(fk, "referenced_table", "referencedTable"),
                referenced_column=_pick(fk, "referenced_column", "referencedColumn"),
            )
            for fk in _pick(data, "foreign_keys", "foreignKeys") or []
        ]
        return cls(name=data["name"], columns=columns, foreign_keys=foreign_keys)


@dataclass
class LineageContext:
    """Snapshot of extraction-layer facts a graph is built from."""
    components: List[Component] = field(default_factory=list)
    api_calls: List[APICall] = field(default_factory=list)
    endpoints: List[Endpoint] = field(default_factory=list)
    queries: List[DatabaseQuery] = field(default_factory=list)
    tables: List[Table] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineageContext":
        return cls(
            components=[Component.from_dict(c) for c in data.get("components") or []],
            api_calls=[APICall.from_dict(c) for c in _pick(data, "api_calls", "apiCalls") or []],
            endpoints=[Endpoint.from_dict(e) for e in data.get("endpoints") or []],
            queries=[DatabaseQuery.from_dict(q) for q in data.get("queries") or []],
            tables=[Table.from_dict(t) for t in data.get("tables") or []],
        )


# ---------------------------------------------------------------------------
# Lineage graph
# ---------------------------------------------------------------------------

class Layer(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    DATABASE = "database"


class NodeType(str, Enum):
    """Kinds of lineage nodes."""
    COMPONENT = "component"
    PAGE = "page"
    API_CALL = "api-call"
    ENDPOINT = "endpoint"
    SERVICE = "service"
    CONTROLLER = "controller"
    DATABASE_QUERY = "database-query"
    TABLE = "table"
    SCHEMA = "schema"

    @property
    def layer(self) -> Layer:
        return NODE_LAYERS[self]


NODE_LAYERS: Dict[NodeType, Layer] = {
    NodeType.COMPONENT: Layer.FRONTEND,
    NodeType.PAGE: Layer.FRONTEND,
    NodeType.API_CALL: Layer.FRONTEND,
    NodeType.ENDPOINT: Layer.BACKEND,
    NodeType.SERVICE: Layer.BACKEND,
    NodeType.CONTROLLER: Layer.BACKEND,
    NodeType.DATABASE_QUERY: Layer.BACKEND,
    NodeType.TABLE: Layer.DATABASE,
    NodeType.SCHEMA: Layer.DATABASE,
}


class EdgeType(str, Enum):
    """Kinds of lineage edges."""
    API_CALL = "api-call"
    DATABASE_QUERY = "database-query"
    DATA_FLOW = "data-flow"
    NAVIGATION = "navigation"
    DEPENDENCY = "dependency"


def make_node_id(node_type: NodeType, qualifier: str) -> str:
    """Build a ``<type>:<qualifier>`` node id.

    Database queries use the shorter ``query`` prefix.
    """
    prefix = "query" if node_type is NodeType.DATABASE_QUERY else node_type.value
    return f"{prefix}:{qualifier}"


def make_edge_id(source: str, target: str) -> str:
    return f"edge:{source}->{target}"


@dataclass
class LineageNode:
    """A node in the lineage graph."""
    id: str
    type: NodeType
    label: str
    file: str = ""
    line: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def layer(self) -> Layer:
        return self.type.layer

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "layer": self.layer.value,
            "label": self.label,
            "file": self.file,
            "line": self.line,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineageNode":
        return cls(
            id=data["id"],
            type=NodeType(data["type"]),
            label=data.get("label", data["id"]),
            file=data.get("file") or "",
            line=data.get("line"),
            data=dict(data.get("data") or {}),
        )


@dataclass
class LineageEdge:
    """A directed, confidence-scored edge in the lineage graph."""
    id: str
    source: str
    target: str
    type: EdgeType
    confidence: float
    label: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Edge confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from": self.source,
            "to": self.target,
            "type": self.type.value,
            "confidence": self.confidence,
            "label": self.label,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineageEdge":
        source = data.get("from", data.get("source"))
        target = data.get("to", data.get("target"))
        return cls(
            id=data.get("id") or make_edge_id(source, target),
            source=source,
            target=target,
            type=EdgeType(data["type"]),
            confidence=float(data.get("confidence", 1.0)),
            label=data.get("label") or "",
            data=dict(data.get("data") or {}),
        )


@dataclass
class ConfidenceStats:
    """Summary statistics over edge confidences."""
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    # Buckets: [0,0.2) [0.2,0.4) [0.4,0.6) [0.6,0.8) [0.8,1.0]
    distribution: List[int] = field(default_factory=lambda: [0, 0, 0, 0, 0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average": self.average,
            "min": self.min,
            "max": self.max,
            "distribution": list(self.distribution),
        }


@dataclass
class GraphMetadata:
    """Aggregate statistics of a lineage graph."""
    total_nodes: int = 0
    total_edges: int = 0
    node_counts: Dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in NodeType}
    )
    edge_counts: Dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in EdgeType}
    )
    confidence: ConfidenceStats = field(default_factory=ConfidenceStats)
    disconnected_components: int = 0
    longest_path: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "nodeCounts": dict(self.node_counts),
            "edgeCounts": dict(self.edge_counts),
            "confidence": self.confidence.to_dict(),
            "disconnectedComponents": self.disconnected_components,
            "longestPath": self.longest_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphMetadata":
        confidence = data.get("confidence") or {}
        return cls(
            total_nodes=_pick(data, "total_nodes", "totalNodes", 0),
            total_edges=_pick(data, "total_edges", "totalEdges", 0),
            node_counts=dict(_pick(data, "node_counts", "nodeCounts", {})),
            edge_counts=dict(_pick(data, "edge_counts", "edgeCounts", {})),
            confidence=ConfidenceStats(
                average=confidence.get("average", 0.0),
                min=confidence.get("min", 0.0),
                max=confidence.get("max", 0.0),
                distribution=list(confidence.get("distribution", [0, 0, 0, 0, 0])),
            ),
            disconnected_components=_pick(
                data, "disconnected_components", "disconnectedComponents", 0
            ),
            longest_path=_pick(data, "longest_path", "longestPath", 0),
        )


@dataclass
class GraphLayers:
    """Nodes partitioned by architectural layer."""
    frontend: List[LineageNode] = field(default_factory=list)
    backend: List[LineageNode] = field(default_factory=list)
    database: List[LineageNode] = field(default_factory=list)

    @classmethod
    def partition(cls, nodes: Iterable[LineageNode]) -> "GraphLayers":
        layers = cls()
        for node in nodes:
            layers.get(node.layer).append(node)
        return layers

    def get(self, layer: Layer) -> List[LineageNode]:
        return getattr(self, layer.value)


@dataclass
class LineageGraph:
    """Three-layer lineage graph linking frontend, backend and database artifacts."""
    nodes: List[LineageNode] = field(default_factory=list)
    edges: List[LineageEdge] = field(default_factory=list)
    layers: GraphLayers = field(default_factory=GraphLayers)
    metadata: GraphMetadata = field(default_factory=GraphMetadata)

    def __post_init__(self):
        self._index: Dict[str, LineageNode] = {}
        self._adjacency: Optional[Dict[str, List[Tuple[LineageEdge, str, bool]]]] = None
        for node in self.nodes:
            self._index.setdefault(node.id, node)

    def get_node(self, node_id: str) -> Optional[LineageNode]:
        return self._index.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._index

    def nodes_by_type(self, node_type: NodeType) -> List[LineageNode]:
        return [n for n in self.nodes if n.type is node_type]

    def dangling_edges(self) -> List[LineageEdge]:
        """Edges whose source or target is not a node of this graph."""
        return [
            e for e in self.edges
            if e.source not in self._index or e.target not in self._index
        ]

    def neighbors(self, node_id: str) -> List[Tuple[LineageEdge, str, bool]]:
        """
        Return ``(edge, neighbor_id, forward)`` for every edge touching a node.

        ``forward`` is True when the edge leaves ``node_id``. Dangling edges
        are skipped.
        """
        if self._adjacency is None:
            adjacency: Dict[str, List[Tuple[LineageEdge, str, bool]]] = {}
            for edge in self.edges:
                if edge.source not in self._index or edge.target not in self._index:
                    continue
                adjacency.setdefault(edge.source, []).append((edge, edge.target, True))
                adjacency.setdefault(edge.target, []).append((edge, edge.source, False))
            self._adjacency = adjacency
        return self._adjacency.get(node_id, [])

    def to_networkx(self) -> nx.DiGraph:
        """
        Convert the graph to a NetworkX DiGraph.

        Returns:
            DiGraph with ``type``/``layer``/``data`` node attributes and
            ``type``/``confidence``/``id`` edge attributes. Dangling edges are
            left out.
        """
        graph = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(node.id, type=node.type.value, layer=node.layer.value, data=node)
        for edge in self.edges:
            if graph.has_node(edge.source) and graph.has_node(edge.target):
                graph.add_edge(
                    edge.source,
                    edge.target,
                    id=edge.id,
                    type=edge.type.value,
                    confidence=edge.confidence,
                    data=edge,
                )
        return graph

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "layers": {
                layer.value: [n.id for n in self.layers.get(layer)] for layer in Layer
            },
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineageGraph":
        nodes = [LineageNode.from_dict(n) for n in data.get("nodes") or []]
        edges = [LineageEdge.from_dict(e) for e in data.get("edges") or []]
        metadata = GraphMetadata.from_dict(data.get("metadata") or {})
        return cls(
            nodes=nodes,
            edges=edges,
            layers=GraphLayers.partition(nodes),
            metadata=metadata,
        )
