"""LineageImpactEngine: builds lineage graphs and analyzes change impact."""

import time
from typing import Any, Dict, List, Optional, Union

import networkx as nx

from .change_request import ChangeRequest, ChangeRequestParser
from .config import LineageConfig
from .coverage_augmenter import TestFile
from .exceptions import ChangeRequestValidationError
from .graph_builder import LineageGraphBuilder
from .impact_analyzer import ImpactAnalyzer
from .impact_models import ImpactAnalysis
from .logger import get_logger, set_log_level
from .models import LineageContext, LineageGraph

ChangeInput = Union[str, Dict[str, Any], ChangeRequest]


class LineageImpactEngine:
    """
    Drives the whole pipeline: extraction facts -> lineage graph -> impact analysis.

    The engine keeps the last graph it built so that several change requests
    can be analyzed against the same snapshot.
    """

    def __init__(self, config: Optional[LineageConfig] = None):
        self.config = config or LineageConfig()
        set_log_level(self.config.log_level)
        self.logger = get_logger()
        self.builder = LineageGraphBuilder(self.config)
        self.parser = ChangeRequestParser()
        self.analyzer = ImpactAnalyzer(self.config)
        self.graph = LineageGraph()
        self._context = LineageContext()
        self._performance_metrics: Dict[str, float] = {}

        self.logger.info("Lineage impact engine initialized")

    def get_performance_metrics(self) -> Dict[str, float]:
        """Get performance metrics for all operations."""
        metrics = self._performance_metrics.copy()
        for phase, seconds in self.builder.get_performance_metrics().items():
            metrics[f"build_graph.{phase}"] = seconds
        return metrics

    def build_graph(self, context: Optional[Union[LineageContext, Dict[str, Any]]] = None) -> LineageGraph:
        """
        Build a fresh lineage graph and keep it as the current snapshot.

        Args:
            context: Extraction facts, either a LineageContext or its dict form

        Returns:
            The new LineageGraph
        """
        start_time = time.time()
        if isinstance(context, dict):
            context = LineageContext.from_dict(context)
        self._context = context or LineageContext()
        self.graph = self.builder.build(self._context)
        self._performance_metrics["build_graph"] = time.time() - start_time
        return self.graph

    def parse_change(self, change_input: ChangeInput) -> ChangeRequest:
        """Parse free text, a mapping or a ChangeRequest into a ChangeRequest."""
        return self.parser.parse(change_input)

    def analyze(
        self,
        change_input: ChangeInput,
        graph: Optional[LineageGraph] = None,
        test_files: Optional[List[TestFile]] = None,
        coverage_map: Optional[Dict[str, List[str]]] = None,
        repository: str = "",
    ) -> ImpactAnalysis:
        """
        Analyze a change against a graph.

        Args:
            change_input: Change request in any form accepted by ``parse_change``
            graph: Graph to analyze against. Defaults to the last built graph.
            test_files: Optional test files for coverage augmentation
            coverage_map: Optional precomputed source file -> tests map
            repository: Repository name recorded on the result

        Returns:
            ImpactAnalysis

        Raises:
            ChangeRequestValidationError: If the change request is invalid
        """
        start_time = time.time()
        try:
            change = self.parse_change(change_input)
        except ChangeRequestValidationError as e:
            self.logger.error(f"Rejected change request after {time.time() - start_time:.3f}s: "
                              f"{e.message}")
            raise
        use_context = graph is None
        graph = graph if graph is not None else self.graph

        analysis = self.analyzer.analyze(
            change,
            graph,
            endpoints=self._context.endpoints if use_context else None,
            queries=self._context.queries if use_context else None,
            components=self._context.components if use_context else None,
            test_files=test_files,
            coverage_map=coverage_map,
            repository=repository,
        )
        self._performance_metrics["analyze"] = time.time() - start_time
        return analysis

    def get_graph_statistics(self) -> Dict[str, Any]:
        """
        Get statistics of the current graph.

        Returns:
            Graph metadata plus density and layer sizes
        """
        stats = self.graph.metadata.to_dict()
        nx_graph = self.graph.to_networkx()
        stats["density"] = nx.density(nx_graph) if nx_graph.number_of_nodes() > 1 else 0
        stats["layers"] = {
            "frontend": len(self.graph.layers.frontend),
            "backend": len(self.graph.layers.backend),
            "database": len(self.graph.layers.database),
        }
        return stats

    def serialize_graph(self) -> Dict[str, Any]:
        """Serialize the current graph into a JSON-compatible dict."""
        return self.graph.to_dict()

    def load_graph(self, data: Dict[str, Any]) -> LineageGraph:
        """Restore a previously serialized graph as the current snapshot."""
        self.graph = LineageGraph.from_dict(data)
        self._context = LineageContext()
        return self.graph

    def health_check(self) -> Dict[str, Any]:
        """
        Perform a health check of the engine.

        Returns:
            Dictionary containing health status
        """
        nodes, edges = len(self.graph.nodes), len(self.graph.edges)
        health_status = {
            "status": "healthy",
            "graph_nodes": nodes,
            "graph_edges": edges,
            "config": {
                "max_nodes": self.config.max_nodes,
                "max_edges": self.config.max_edges,
                "impact_max_depth": self.config.impact_max_depth,
            },
            "performance_metrics": self.get_performance_metrics(),
        }

        warnings = []
        if nodes > self.config.max_nodes * 0.8:
            warnings.append(f"Graph approaching node limit ({nodes}/{self.config.max_nodes})")
        if edges > self.config.max_edges * 0.8:
            warnings.append(f"Graph approaching edge limit ({edges}/{self.config.max_edges})")
        dangling = self.graph.dangling_edges()
        if dangling:
            warnings.append(f"Graph has {len(dangling)} dangling edges")

        if warnings:
            health_status["warnings"] = warnings
        return health_status

    def reset(self):
        """Reset the engine to its initial state."""
        self.logger.info("Resetting lineage impact engine")
        self.graph = LineageGraph()
        self._context = LineageContext()
        self._performance_metrics.clear()
        self.builder = LineageGraphBuilder(self.config)
