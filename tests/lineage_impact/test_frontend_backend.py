"""Tests for frontend to backend API call matching."""

import pytest
from hypothesis import given, strategies as st

from lineage_impact.config import LineageConfig
from lineage_impact.frontend_backend import FrontendBackendConnector
from lineage_impact.models import APICall, EdgeType, Endpoint, EndpointParameter

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def api_call(call_id="c1", method="GET", url=None, url_pattern=None):
    return APICall(id=call_id, file="src/api.ts", method=method, url=url, url_pattern=url_pattern)


def endpoint(endpoint_id="e1", method="GET", path="/api/users", parameters=None):
    return Endpoint(
        id=endpoint_id,
        file="server/routes.py",
        method=method,
        path=path,
        path_pattern=path,
        handler="list_users",
        parameters=parameters or [],
    )


class TestFrontendBackendConnector:
    """Test scoring and selection of API call matches."""

    def setup_method(self):
        """Set up test fixtures."""
        self.connector = FrontendBackendConnector(LineageConfig())

    def test_method_mismatch_is_hard_gate(self):
        """Test that a method mismatch rules out a match."""
        call = api_call(method="POST", url="/api/users")
        assert self.connector.match(call, endpoint(method="GET")) is None
        assert self.connector.score(call, endpoint(method="GET")) == 0.0
        assert self.connector.connect([call], [endpoint(method="GET")]) == []

    def test_method_compared_case_insensitively(self):
        """Test case-insensitive method comparison."""
        call = api_call(method="get", url="/api/users")
        assert self.connector.score(call, endpoint(method="GET")) == 0.8

    def test_exact_url(self):
        """Test an exact URL match."""
        match = self.connector.match(api_call(url="/api/users"), endpoint())
        assert match.confidence == 0.8
        assert match.signals == {"method_match": 0.3, "exact_url": 0.5}
        assert match.reasons[0] == "HTTP method matches"

    def test_url_containment(self):
        """Test URL containment matching."""
        match = self.connector.match(api_call(url="/api/users/active"), endpoint())
        assert match.confidence == 0.7
        assert "url_contains" in match.signals

    def test_absolute_url_matches_by_containment(self):
        """Test that absolute URLs match by containment."""
        match = self.connector.match(api_call(url="https://example.com/api/users"), endpoint())
        assert "url_contains" in match.signals
        assert match.confidence == 0.7

    def test_parametrized_route(self):
        """Test matching a parametrized route."""
        match = self.connector.match(
            api_call(url="/api/orders/42"),
            endpoint(path="/api/orders/:id", parameters=[EndpointParameter(name="id")]),
        )
        assert "param_path_regex" in match.signals
        # Static URL has no dynamic segments, so no parameter bonus
        assert "path_param_count" not in match.signals
        assert match.confidence == 0.65

    def test_url_pattern_exact(self):
        """Test an exact dynamic URL pattern match."""
        match = self.connector.match(
            api_call(url_pattern="/api/orders/${id}"),
            endpoint(path="/api/orders/:id", parameters=[EndpointParameter(name="id")]),
        )
        assert match.signals == {"method_match": 0.3, "exact_pattern": 0.4, "path_param_count": 0.2}
        assert match.confidence == 0.9

    def test_url_pattern_structure(self):
        """Test a structural dynamic URL pattern match."""
        match = self.connector.match(
            api_call(url_pattern="/api/orders/${id}"),
            endpoint(path="/api/orders/latest"),
        )
        assert match.signals == {"method_match": 0.3, "pattern_structure": 0.3}
        assert match.confidence == 0.6

    def test_parameter_count_mismatch(self):
        """Test that differing parameter counts lose the count signal."""
        match = self.connector.match(
            api_call(url_pattern="/api/orders/${id}/${item}"),
            endpoint(path="/api/orders/:id", parameters=[EndpointParameter(name="id")]),
        )
        assert "path_param_count" not in match.signals

    def test_query_parameters_do_not_count(self):
        """Test that query parameters are not path parameters."""
        match = self.connector.match(
            api_call(url_pattern="/api/orders/${id}"),
            endpoint(path="/api/orders/:id", parameters=[
                EndpointParameter(name="id"),
                EndpointParameter(name="limit", type="query"),
            ]),
        )
        assert "path_param_count" in match.signals

    def test_method_only_is_below_threshold(self):
        """Test that a method match alone stays below the threshold."""
        call = api_call(url="/api/users")
        assert self.connector.score(call, endpoint(path="/totally/else")) == 0.3
        assert self.connector.connect([call], [endpoint(path="/totally/else")]) == []

    def test_keeps_best_match_per_call(self):
        """Test that each call keeps its best match."""
        call = api_call(url="/api/users")
        endpoints = [
            endpoint("e-partial", path="/api/users/:id"),
            endpoint("e-exact", path="/api/users"),
        ]
        matches = self.connector.connect([call], endpoints)
        assert len(matches) == 1
        assert matches[0].endpoint.id == "e-exact"

    def test_ties_prefer_smallest_endpoint_id(self):
        """Test that ties go to the smallest endpoint id."""
        call = api_call(url="/api/users")
        endpoints = [endpoint("e2"), endpoint("e1")]
        assert self.connector.connect([call], endpoints)[0].endpoint.id == "e1"
        assert self.connector.connect([call], list(reversed(endpoints)))[0].endpoint.id == "e1"

    def test_create_edges(self):
        """Test edge creation from matches."""
        matches = self.connector.connect([api_call(url="/api/users")], [endpoint()])
        edges = self.connector.create_edges(matches)

        assert len(edges) == 1
        edge = edges[0]
        assert edge.id == "edge:api-call:c1->endpoint:e1"
        assert edge.type is EdgeType.API_CALL
        assert edge.confidence == 0.8
        assert edge.data["method"] == "GET"
        assert edge.data["url"] == "/api/users"
        assert edge.data["reasons"] == matches[0].reasons

    def test_custom_weights(self):
        """Test matching with custom signal weights."""
        connector = FrontendBackendConnector(LineageConfig(signal_weights={"exact_url": 0.7}))
        assert connector.score(api_call(url="/api/users"), endpoint()) == 1.0


@given(
    st.sampled_from(HTTP_METHODS),
    st.sampled_from(HTTP_METHODS),
    st.sampled_from(["/api/users", "/api/users/1", "/other", "https://x.io/api/users?q=1"]),
)
def test_differing_methods_never_match(call_method, endpoint_method, url):
    """Calls never match endpoints with a different HTTP method."""
    connector = FrontendBackendConnector()
    call = api_call(method=call_method, url=url)
    target = endpoint(method=endpoint_method)
    if call_method != endpoint_method:
        assert connector.score(call, target) == 0.0
        assert connector.connect([call], [target]) == []


@given(
    st.text(alphabet="abc/:{}$[]?", max_size=20),
    st.text(alphabet="abc/:", max_size=20),
    st.booleans(),
)
def test_confidence_stays_in_unit_interval(url, path, as_pattern):
    """Match confidence is always within [0, 1]."""
    connector = FrontendBackendConnector()
    call = api_call(url=None if as_pattern else url or None, url_pattern=url if as_pattern else None)
    match = connector.match(call, endpoint(path=path, parameters=[EndpointParameter(name="id")]))
    assert 0.0 <= match.confidence <= 1.0
