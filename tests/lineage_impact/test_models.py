"""Tests for lineage graph data models."""

import networkx as nx
import pytest
from hypothesis import given, strategies as st

from lineage_impact.models import (
    APICall,
    DatabaseQuery,
    EdgeType,
    Endpoint,
    EndpointParameter,
    GraphLayers,
    Layer,
    LineageContext,
    LineageEdge,
    LineageGraph,
    LineageNode,
    NodeType,
    Table,
    make_edge_id,
    make_node_id,
)


def node(node_id, node_type=NodeType.COMPONENT, file="src/App.tsx"):
    return LineageNode(id=node_id, type=node_type, label=node_id, file=file)


def edge(source, target, confidence=1.0, edge_type=EdgeType.DEPENDENCY):
    return LineageEdge(
        id=make_edge_id(source, target),
        source=source,
        target=target,
        type=edge_type,
        confidence=confidence,
    )


class TestExtractionRecords:
    """Test the extraction-layer input records."""

    def test_api_call_from_camel_case(self):
        """Test building an API call from camelCase keys."""
        call = APICall.from_dict({
            "id": 7,
            "file": "src/api.ts",
            "method": "get",
            "urlPattern": "/api/users/${id}",
            "line": 12,
        })
        assert call.id == "7"
        assert call.method == "GET"
        assert call.url is None
        assert call.url_pattern == "/api/users/${id}"
        assert call.target == "/api/users/${id}"

    def test_endpoint_parameters_from_mixed_input(self):
        """Test endpoint parameters from strings and mappings."""
        endpoint = Endpoint.from_dict({
            "id": "e1",
            "file": "routes.py",
            "method": "get",
            "path": "/users/:id",
            "parameters": ["id", {"name": "limit", "type": "query"}],
        })
        assert endpoint.method == "GET"
        assert endpoint.path_pattern == "/users/:id"
        assert endpoint.parameters == [
            EndpointParameter(name="id"),
            EndpointParameter(name="limit", type="query"),
        ]
        assert endpoint.path_parameter_count() == 1

    def test_query_table_names_deduplicated(self):
        """Test that query table names are deduplicated."""
        query = DatabaseQuery(id="q1", file="db.py", type="select",
                              table="Users", tables=["users", "orders", "Orders"])
        assert query.table_names() == ["Users", "orders"]

    def test_table_from_dict(self):
        """Test building a table from a dictionary."""
        table = Table.from_dict({
            "name": "orders",
            "columns": [{"name": "id", "type": "int"}, {"name": "user_id"}],
            "foreignKeys": [{"column": "user_id", "referencedTable": "users", "referencedColumn": "id"}],
        })
        assert [c.name for c in table.columns] == ["id", "user_id"]
        assert table.foreign_keys[0].referenced_table == "users"

    def test_context_from_dict(self):
        """Test building a context from a dictionary."""
        context = LineageContext.from_dict({
            "apiCalls": [{"id": "c1", "file": "a.ts", "method": "GET", "url": "/x"}],
            "tables": [{"name": "users"}],
        })
        assert len(context.api_calls) == 1
        assert context.components == []
        assert context.tables[0].name == "users"


class TestGraphModels:
    """Test nodes, edges and the graph container."""

    def test_node_ids(self):
        """Test node id construction."""
        assert make_node_id(NodeType.ENDPOINT, "e1") == "endpoint:e1"
        assert make_node_id(NodeType.DATABASE_QUERY, "q1") == "query:q1"
        assert make_node_id(NodeType.TABLE, "users") == "table:users"
        assert make_edge_id("a", "b") == "edge:a->b"

    def test_every_node_type_has_a_layer(self):
        """Test that every node type belongs to a layer."""
        for node_type in NodeType:
            assert isinstance(node_type.layer, Layer)
        assert NodeType.API_CALL.layer is Layer.FRONTEND
        assert NodeType.DATABASE_QUERY.layer is Layer.BACKEND
        assert NodeType.SCHEMA.layer is Layer.DATABASE

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_edge_confidence_out_of_range(self, confidence):
        """Test rejection of out-of-range edge confidence."""
        with pytest.raises(ValueError):
            edge("a", "b", confidence=confidence)

    def test_edge_to_dict_uses_from_to(self):
        """Test that edge dictionaries use from and to keys."""
        data = edge("a", "b", 0.7).to_dict()
        assert data["from"] == "a"
        assert data["to"] == "b"
        assert data["type"] == "dependency"
        assert data["confidence"] == 0.7

    def test_layers_partition(self):
        """Test partitioning nodes into layers."""
        nodes = [
            node("component:a"),
            node("endpoint:e", NodeType.ENDPOINT),
            node("query:q", NodeType.DATABASE_QUERY),
            node("table:t", NodeType.TABLE, file=""),
        ]
        layers = GraphLayers.partition(nodes)
        assert [n.id for n in layers.frontend] == ["component:a"]
        assert [n.id for n in layers.backend] == ["endpoint:e", "query:q"]
        assert [n.id for n in layers.database] == ["table:t"]

    def test_neighbors_both_directions(self):
        """Test neighbor lookup in both directions."""
        graph = LineageGraph(
            nodes=[node("a"), node("b"), node("c")],
            edges=[edge("a", "b"), edge("c", "a"), edge("a", "missing")],
        )
        neighbors = {(n, forward) for _, n, forward in graph.neighbors("a")}
        assert neighbors == {("b", True), ("c", False)}
        assert graph.neighbors("unknown") == []

    def test_dangling_edges(self):
        """Test detection of dangling edges."""
        graph = LineageGraph(nodes=[node("a")], edges=[edge("a", "ghost")])
        assert [e.id for e in graph.dangling_edges()] == ["edge:a->ghost"]

    def test_to_networkx_skips_dangling(self):
        """Test that dangling edges are left out of networkx graphs."""
        graph = LineageGraph(
            nodes=[node("a"), node("b")],
            edges=[edge("a", "b", 0.6), edge("b", "ghost")],
        )
        nx_graph = graph.to_networkx()
        assert isinstance(nx_graph, nx.DiGraph)
        assert set(nx_graph.nodes) == {"a", "b"}
        assert list(nx_graph.edges) == [("a", "b")]
        assert nx_graph.edges["a", "b"]["confidence"] == 0.6
        assert nx_graph.nodes["a"]["layer"] == "frontend"

    def test_graph_dict_roundtrip(self):
        """Test graph dictionary serialization roundtrip."""
        nodes = [node("a"), node("t", NodeType.TABLE, file="")]
        graph = LineageGraph(nodes=nodes, edges=[edge("a", "t", 0.5)],
                             layers=GraphLayers.partition(nodes))
        data = graph.to_dict()

        assert data["layers"] == {"frontend": ["a"], "backend": [], "database": ["t"]}

        restored = LineageGraph.from_dict(data)
        assert [n.id for n in restored.nodes] == ["a", "t"]
        assert restored.edges[0].source == "a"
        assert restored.edges[0].confidence == 0.5
        assert restored.get_node("t").type is NodeType.TABLE


@given(st.floats(min_value=0.0, max_value=1.0, allow_nan=False))
def test_edge_accepts_unit_interval(confidence):
    """Any confidence in [0, 1] is a valid edge confidence."""
    assert edge("a", "b", confidence).confidence == confidence
