"""Unified lineage graph builder: frontend -> backend -> database."""

import time
from typing import Dict, List, Optional

import networkx as nx

from .backend_database import BackendDatabaseConnector
from .config import LineageConfig
from .frontend_backend import FrontendBackendConnector
from .logger import get_logger
from .models import (
    APICall,
    Component,
    ConfidenceStats,
    DatabaseQuery,
    Endpoint,
    EdgeType,
    GraphLayers,
    GraphMetadata,
    LineageContext,
    LineageEdge,
    LineageGraph,
    LineageNode,
    NodeType,
    Table,
    make_node_id,
)


class LineageGraphBuilder:
    """
    Builds a complete lineage graph from a snapshot of extraction-layer facts.

    The graph is rebuilt from scratch on every call to ``build``; nothing is
    carried over between builds.
    """

    def __init__(self, config: Optional[LineageConfig] = None):
        self.config = config or LineageConfig()
        self.logger = get_logger()
        self.frontend_backend = FrontendBackendConnector(self.config)
        self.backend_database = BackendDatabaseConnector(self.config)
        self._performance_metrics: Dict[str, float] = {}

    def get_performance_metrics(self) -> Dict[str, float]:
        """Get timings of the last build, per phase."""
        return self._performance_metrics.copy()

    def build(self, context: Optional[LineageContext] = None) -> LineageGraph:
        """
        Build the lineage graph.

        Args:
            context: Components, API calls, endpoints, queries and tables.
                A missing context yields an empty graph.

        Returns:
            LineageGraph with nodes, edges, layers and metadata
        """
        context = context or LineageContext()
        start_time = time.time()
        self._performance_metrics.clear()
        self.logger.info("Starting lineage graph build")

        nodes = self._create_nodes(context)
        node_ids = {n.id for n in nodes}
        self._performance_metrics["create_nodes"] = time.time() - start_time

        phase_start = time.time()
        edges: List[LineageEdge] = []

        fb_matches = self.frontend_backend.connect(context.api_calls, context.endpoints)
        edges.extend(self.frontend_backend.create_edges(fb_matches))

        bd_matches = self.backend_database.connect(context.endpoints, context.queries)
        edges.extend(self.backend_database.create_edges(bd_matches))

        edges.extend(self.backend_database.connect_queries_to_tables(context.queries, context.tables))

        edges = self._deduplicate_edges(edges)
        dangling = [e for e in edges if e.source not in node_ids or e.target not in node_ids]
        if dangling:
            self.logger.warning(f"Dropping {len(dangling)} edges with unknown endpoints")
            dangling_ids = {e.id for e in dangling}
            edges = [e for e in edges if e.id not in dangling_ids]
        self._performance_metrics["connect_layers"] = time.time() - phase_start

        phase_start = time.time()
        metadata = compute_metadata(nodes, edges)
        self._performance_metrics["compute_metadata"] = time.time() - phase_start

        if len(nodes) > self.config.max_nodes:
            self.logger.warning(f"Graph size ({len(nodes)} nodes) exceeds recommended limit")
        if len(edges) > self.config.max_edges:
            self.logger.warning(f"Graph size ({len(edges)} edges) exceeds recommended limit")

        graph = LineageGraph(
            nodes=nodes,
            edges=edges,
            layers=GraphLayers.partition(nodes),
            metadata=metadata,
        )

        execution_time = time.time() - start_time
        self._performance_metrics["build"] = execution_time
        self.logger.info(f"Lineage graph build completed: {len(nodes)} nodes, "
                         f"{len(edges)} edges in {execution_time:.3f}s")
        return graph

    def _create_nodes(self, context: LineageContext) -> List[LineageNode]:
        nodes: List[LineageNode] = []
        nodes.extend(self._component_node(c) for c in context.components)
        nodes.extend(self._api_call_node(c) for c in context.api_calls)
        nodes.extend(self._endpoint_node(e) for e in context.endpoints)
        nodes.extend(self._query_node(q) for q in context.queries)
        nodes.extend(self._table_node(t) for t in context.tables)

        unique: Dict[str, LineageNode] = {}
        for node in nodes:
            if node.id in unique:
                self.logger.warning(f"Duplicate node id {node.id}, keeping the first definition")
                continue
            unique[node.id] = node
        return list(unique.values())

    @staticmethod
    def _component_node(component: Component) -> LineageNode:
        return LineageNode(
            id=make_node_id(NodeType.COMPONENT, f"{component.file}:{component.name}"),
            type=NodeType.COMPONENT,
            label=component.name,
            file=component.file,
            line=component.line or None,
            data={
                "componentName": component.name,
                "props": list(component.props),
            },
        )

    @staticmethod
    def _api_call_node(call: APICall) -> LineageNode:
        return LineageNode(
            id=make_node_id(NodeType.API_CALL, call.id),
            type=NodeType.API_CALL,
            label=f"{call.method} {call.target or 'dynamic'}",
            file=call.file,
            line=call.line or None,
            data={
                "method": call.method,
                "url": call.target or None,
            },
        )

    @staticmethod
    def _endpoint_node(endpoint: Endpoint) -> LineageNode:
        return LineageNode(
            id=make_node_id(NodeType.ENDPOINT, endpoint.id),
            type=NodeType.ENDPOINT,
            label=f"{endpoint.method} {endpoint.path}",
            file=endpoint.file,
            line=endpoint.line or None,
            data={
                "httpMethod": endpoint.method,
                "path": endpoint.path,
                "handler": endpoint.handler,
                "parameters": [p.name for p in endpoint.parameters],
            },
        )

    @staticmethod
    def _query_node(query: DatabaseQuery) -> LineageNode:
        return LineageNode(
            id=make_node_id(NodeType.DATABASE_QUERY, query.id),
            type=NodeType.DATABASE_QUERY,
            label=f"{query.type} {query.table or 'query'}",
            file=query.file,
            line=query.line or None,
            data={
                "queryType": query.type,
                "table": query.table,
                "tables": query.table_names(),
                "function": query.function,
                "ormMethod": query.orm_method,
            },
        )

    @staticmethod
    def _table_node(table: Table) -> LineageNode:
        return LineageNode(
            id=make_node_id(NodeType.TABLE, table.name),
            type=NodeType.TABLE,
            label=table.name,
            file="",
            data={
                "tableName": table.name,
                "columns": [c.name for c in table.columns],
                "foreignKeys": [
                    {
                        "column": fk.column,
                        "referencedTable": fk.referenced_table,
                        "referencedColumn": fk.referenced_column,
                    }
                    for fk in table.foreign_keys
                ],
            },
        )

    @staticmethod
    def _deduplicate_edges(edges: List[LineageEdge]) -> List[LineageEdge]:
        unique: Dict[str, LineageEdge] = {}
        for edge in edges:
            existing = unique.get(edge.id)
            if existing is None or edge.confidence > existing.confidence:
                unique[edge.id] = edge
        return list(unique.values())


def compute_metadata(nodes: List[LineageNode], edges: List[LineageEdge]) -> GraphMetadata:
    """
    Calculate aggregate statistics for a set of nodes and edges.

    Edges referencing unknown nodes are counted but ignored by the
    component and path statistics.
    """
    node_counts = {t.value: 0 for t in NodeType}
    edge_counts = {t.value: 0 for t in EdgeType}
    for node in nodes:
        node_counts[node.type.value] += 1
    for edge in edges:
        edge_counts[edge.type.value] += 1

    confidences = [e.confidence for e in edges]
    distribution = [0, 0, 0, 0, 0]
    for conf in confidences:
        distribution[min(4, int(conf * 5))] += 1

    if confidences:
        stats = ConfidenceStats(
            average=sum(confidences) / len(confidences),
            min=min(confidences),
            max=max(confidences),
            distribution=distribution,
        )
    else:
        stats = ConfidenceStats()

    graph = LineageGraph(nodes=nodes, edges=edges).to_networkx()

    return GraphMetadata(
        total_nodes=len(nodes),
        total_edges=len(edges),
        node_counts=node_counts,
        edge_counts=edge_counts,
        confidence=stats,
        disconnected_components=count_components(graph),
        longest_path=longest_path(graph),
    )


def count_components(graph: nx.DiGraph) -> int:
    """Count components under undirected reachability; isolated nodes count once each."""
    return nx.number_weakly_connected_components(graph)


def longest_path(graph: nx.DiGraph) -> int:
    """
    Node count of the longest simple directed path.

    Acyclic graphs use NetworkX's linear-time DAG algorithm. Cyclic graphs
    fall back to an iterative DFS from every node with a per-path visited
    set, which is exhaustive and only suited to shallow graphs.
    """
    if graph.number_of_nodes() == 0:
        return 0
    if nx.is_directed_acyclic_graph(graph):
        return nx.dag_longest_path_length(graph) + 1

    best = 1
    for start in graph.nodes:
        stack = [(start, frozenset([start]))]
        while stack:
            node, on_path = stack.pop()
            if len(on_path) > best:
                best = len(on_path)
            for successor in graph.successors(node):
                if successor not in on_path:
                    stack.append((successor, on_path | {successor}))
    return best


def filter_dangling_edges(graph: LineageGraph) -> LineageGraph:
    """Return a copy of the graph without edges that reference unknown nodes."""
    dangling = {e.id for e in graph.dangling_edges()}
    if not dangling:
        return graph
    get_logger().warning(f"Filtering {len(dangling)} dangling edges")
    edges = [e for e in graph.edges if e.id not in dangling]
    return LineageGraph(
        nodes=list(graph.nodes),
        edges=edges,
        layers=GraphLayers.partition(graph.nodes),
        metadata=compute_metadata(graph.nodes, edges),
    )
