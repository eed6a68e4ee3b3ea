"""Impact analysis over a lineage graph."""

import time
from collections import deque
from typing import Dict, List, Optional, Tuple

from .change_request import ChangeRequest, ChangeTargets, ChangeType, resolve_targets
from .config import LineageConfig
from .coverage_augmenter import TestCoverageAugmenter, TestFile
from .impact_models import (
    AffectedNode,
    BreakingChange,
    BreakingChangeType,
    Complexity,
    DependencyChain,
    DependencyPath,
    ImpactAnalysis,
    ImpactSummary,
    ImpactType,
    Recommendation,
    RecommendationType,
    Severity,
)
from .logger import get_logger
from .models import (
    Component,
    DatabaseQuery,
    Endpoint,
    LineageEdge,
    LineageGraph,
    LineageNode,
    NodeType,
    make_node_id,
)

# node id -> (parent node id, edge followed, followed in edge direction)
Discovery = Dict[str, Optional[Tuple[str, LineageEdge, bool]]]


def _contains_any(node: LineageNode, patterns: List[str]) -> bool:
    label = node.label.lower()
    file = node.file.lower()
    for pattern in patterns:
        needle = pattern.lower()
        if needle in label or needle in file:
            return True
    return False


class ImpactAnalyzer:
    """
    Predicts what a change request affects in a lineage graph.

    Seeds are picked from the graph according to the change type and
    expanded breadth-first in both edge directions, up to
    ``impact_max_depth`` hops. The graph is only read, never modified.
    """

    def __init__(self, config: Optional[LineageConfig] = None):
        self.config = config or LineageConfig()
        self.logger = get_logger()
        self.augmenter = TestCoverageAugmenter(self.config)

    def analyze(
        self,
        change: ChangeRequest,
        graph: LineageGraph,
        endpoints: Optional[List[Endpoint]] = None,
        queries: Optional[List[DatabaseQuery]] = None,
        components: Optional[List[Component]] = None,
        test_files: Optional[List[TestFile]] = None,
        coverage_map: Optional[Dict[str, List[str]]] = None,
        repository: str = "",
    ) -> ImpactAnalysis:
        """
        Analyze the impact of a change request.

        Args:
            change: Parsed change request
            graph: Lineage graph snapshot
            endpoints: Extracted endpoints, used when the graph has no
                matching endpoint node
            queries: Extracted queries, used to find the queries touching a
                target table
            components: Extracted components, used when the graph has no
                matching component node
            test_files: Test files for coverage augmentation
            coverage_map: Precomputed source file -> tests map
            repository: Repository name recorded on the result

        Returns:
            ImpactAnalysis for the change
        """
        start_time = time.time()
        self.logger.info(f"Analyzing impact of change {change.id} ({change.type.value})")

        targets = resolve_targets(change)
        seeds = self.select_seeds(change, targets, graph)
        discovered = self.traverse(graph, seeds)

        affected_nodes = [self._affected_node(graph.get_node(node_id)) for node_id in discovered]
        affected_files = []
        for node in affected_nodes:
            if node.file and node.file not in affected_files:
                affected_files.append(node.file)

        breaking_changes = self.find_breaking_changes(
            change, targets, graph, seeds, endpoints, queries, components
        )
        summary = self.summarize(affected_nodes, affected_files, breaking_changes)
        recommendations = self.recommend(change, affected_nodes, affected_files, breaking_changes)

        analysis = ImpactAnalysis(
            repository=repository,
            change_request=change,
            affected_nodes=affected_nodes,
            affected_files=affected_files,
            dependency_chain=self.dependency_chain(discovered),
            breaking_changes=breaking_changes,
            recommendations=recommendations,
            summary=summary,
        )

        if test_files:
            analysis = self.augmenter.augment(analysis, test_files, coverage_map)

        self.logger.info(f"Impact analysis completed: {len(affected_nodes)} nodes, "
                         f"{len(affected_files)} files, {len(breaking_changes)} breaking changes "
                         f"in {time.time() - start_time:.3f}s")
        return analysis

    def select_seeds(self, change: ChangeRequest, targets: ChangeTargets,
                     graph: LineageGraph) -> List[str]:
        """Pick the nodes directly implicated by the change."""
        if change.type is ChangeType.MODIFY_API:
            candidates = graph.nodes_by_type(NodeType.ENDPOINT)
            patterns = targets.endpoints
        elif change.type is ChangeType.MODIFY_SCHEMA:
            candidates = graph.nodes_by_type(NodeType.TABLE)
            patterns = targets.tables
        else:
            if not targets.files:
                return [n.id for n in graph.nodes]
            files = set(targets.files)
            return [n.id for n in graph.nodes if n.file in files]

        if not patterns:
            return [n.id for n in candidates]
        return [n.id for n in candidates if _contains_any(n, patterns)]

    def traverse(self, graph: LineageGraph, seeds: List[str]) -> Discovery:
        """
        Breadth-first search from all seeds at once, following edges both ways.

        Returns:
            Discovered node ids in visiting order, each mapped to how it was
            reached (None for seeds)
        """
        discovered: Discovery = {}
        queue = deque()
        for seed in seeds:
            if seed not in discovered and graph.has_node(seed):
                discovered[seed] = None
                queue.append((seed, 0))

        while queue:
            node_id, depth = queue.popleft()
            if depth >= self.config.impact_max_depth:
                continue
            for edge, neighbor, forward in graph.neighbors(node_id):
                if neighbor in discovered:
                    continue
                discovered[neighbor] = (node_id, edge, forward)
                queue.append((neighbor, depth + 1))

        self.logger.debug(f"Traversal from {len(seeds)} seeds reached {len(discovered)} nodes")
        return discovered

    def dependency_chain(self, discovered: Discovery) -> DependencyChain:
        chains = []
        for node_id, via in discovered.items():
            if via is None:
                continue
            nodes = [node_id]
            edges = []
            direction = "forward"
            current = via
            while current is not None:
                parent, edge, forward = current
                nodes.append(parent)
                edges.append(edge.id)
                direction = "forward" if forward else "backward"
                current = discovered[parent]
            nodes.reverse()
            edges.reverse()
            chains.append(DependencyPath(
                source=nodes[0],
                target=node_id,
                nodes=nodes,
                edges=edges,
                direction=direction,
            ))

        return DependencyChain(
            chains=chains,
            max_depth=self.config.impact_max_depth,
            total_affected=len(discovered),
        )

    @staticmethod
    def _affected_node(node: LineageNode) -> AffectedNode:
        # Every reached node, seeds included, is reported the same way.
        return AffectedNode(
            node_id=node.id,
            node_type=node.type.value,
            file=node.file,
            layer=node.layer.value,
            impact_type=ImpactType.INDIRECT,
            impact_reason="Connected to changed component",
            severity=Severity.MEDIUM,
            depth=1,
        )

    def find_breaking_changes(
        self,
        change: ChangeRequest,
        targets: ChangeTargets,
        graph: LineageGraph,
        seeds: List[str],
        endpoints: Optional[List[Endpoint]] = None,
        queries: Optional[List[DatabaseQuery]] = None,
        components: Optional[List[Component]] = None,
    ) -> List[BreakingChange]:
        if change.type is ChangeType.MODIFY_API:
            return self._api_breaking_changes(targets, graph, seeds, endpoints)
        if change.type is ChangeType.MODIFY_SCHEMA:
            return self._schema_breaking_changes(targets, graph, queries)
        if change.type is ChangeType.MODIFY_FEATURE and targets.components:
            return self._component_breaking_changes(change, targets, graph, components)
        return []

    def _api_breaking_changes(self, targets: ChangeTargets, graph: LineageGraph,
                              seeds: List[str],
                              endpoints: Optional[List[Endpoint]]) -> List[BreakingChange]:
        if not targets.endpoints:
            return []

        breaking = []
        for node_id in seeds:
            node = graph.get_node(node_id)
            method = node.data.get("httpMethod", "")
            path = node.data.get("path", node.label)
            breaking.append(self._api_breaking_change(node.id, method, path, node.file, node.line))

        if not breaking and endpoints:
            for endpoint in endpoints:
                if any(p.lower() in endpoint.path.lower() for p in targets.endpoints):
                    breaking.append(self._api_breaking_change(
                        make_node_id(NodeType.ENDPOINT, endpoint.id),
                        endpoint.method, endpoint.path, endpoint.file, endpoint.line or None,
                    ))
        return breaking

    @staticmethod
    def _api_breaking_change(node_id: str, method: str, path: str, file: str,
                             line: Optional[int]) -> BreakingChange:
        return BreakingChange(
            id=f"api-{node_id}",
            type=BreakingChangeType.API_RESPONSE_CHANGED,
            severity=Severity.HIGH,
            description=f"API endpoint {f'{method} {path}'.strip()} may have breaking changes",
            affected_node=node_id,
            file=file,
            line=line,
            impact="Frontend API calls may fail or receive unexpected data",
            migration_path="Update all API consumers to handle the new response format",
        )

    def _schema_breaking_changes(self, targets: ChangeTargets, graph: LineageGraph,
                                 queries: Optional[List[DatabaseQuery]]) -> List[BreakingChange]:
        breaking = []
        for table in targets.tables:
            associated = self.associated_queries(table, graph, queries)
            if not associated:
                continue
            table_node = next(
                (n for n in graph.nodes_by_type(NodeType.TABLE) if n.label.lower() == table.lower()),
                None,
            )
            file, line = associated[0]
            breaking.append(BreakingChange(
                id=f"schema-{table}",
                type=BreakingChangeType.SCHEMA_COLUMN_REMOVED,
                severity=Severity.HIGH,
                description=f"Schema change to table {table} may break {len(associated)} queries",
                affected_node=table_node.id if table_node else make_node_id(NodeType.TABLE, table),
                file=file,
                line=line,
                impact="Database queries may fail",
                migration_path="Create database migration and update affected queries",
            ))
        return breaking

    @staticmethod
    def associated_queries(table: str, graph: LineageGraph,
                           queries: Optional[List[DatabaseQuery]] = None) -> List[Tuple[str, Optional[int]]]:
        """Return ``(file, line)`` of every query touching ``table``."""
        name = table.lower()
        if queries:
            return [
                (q.file, q.line or None) for q in queries
                if name in (t.lower() for t in q.table_names())
            ]
        return [
            (n.file, n.line) for n in graph.nodes_by_type(NodeType.DATABASE_QUERY)
            if name in (t.lower() for t in n.data.get("tables") or [])
        ]

    @staticmethod
    def _component_breaking_changes(change: ChangeRequest, targets: ChangeTargets,
                                    graph: LineageGraph,
                                    components: Optional[List[Component]]) -> List[BreakingChange]:
        component_nodes = [
            n for n in graph.nodes_by_type(NodeType.COMPONENT) if _contains_any(n, targets.components)
        ]
        if component_nodes:
            node_id, file, line = component_nodes[0].id, component_nodes[0].file, component_nodes[0].line
        else:
            wanted = {t.lower() for t in targets.components}
            matched = [c for c in components or [] if c.name.lower() in wanted]
            if not matched:
                return []
            node_id = make_node_id(NodeType.COMPONENT, f"{matched[0].file}:{matched[0].name}")
            file, line = matched[0].file, matched[0].line or None

        return [BreakingChange(
            id=f"component-{change.id}",
            type=BreakingChangeType.TYPE_INCOMPATIBILITY,
            severity=Severity.MEDIUM,
            description=f"Component interface changes may affect parent components: "
                        f"{', '.join(targets.components)}",
            affected_node=node_id,
            file=file,
            line=line,
            impact="Parent components may need prop updates",
            migration_path="Update component props in parent components",
        )]

    def summarize(self, affected_nodes: List[AffectedNode], affected_files: List[str],
                  breaking_changes: List[BreakingChange]) -> ImpactSummary:
        config = self.config
        files, nodes = len(affected_files), len(affected_nodes)

        if files > config.complexity_high_files or nodes > config.complexity_high_nodes:
            complexity = Complexity.HIGH
        elif files > config.complexity_medium_files or nodes > config.complexity_medium_nodes:
            complexity = Complexity.MEDIUM
        else:
            complexity = Complexity.LOW

        counts = {severity: 0 for severity in Severity}
        for node in affected_nodes:
            counts[node.severity] += 1

        return ImpactSummary(
            total_affected_files=files,
            total_affected_nodes=nodes,
            critical_impact=counts[Severity.CRITICAL],
            high_impact=counts[Severity.HIGH],
            medium_impact=counts[Severity.MEDIUM],
            low_impact=counts[Severity.LOW],
            breaking_changes_count=len(breaking_changes),
            estimated_complexity=complexity,
            estimated_time=(config.hours_per_file * files
                            + config.hours_per_breaking_change * len(breaking_changes)),
        )

    def recommend(self, change: ChangeRequest, affected_nodes: List[AffectedNode],
                  affected_files: List[str],
                  breaking_changes: List[BreakingChange]) -> List[Recommendation]:
        recommendations = []

        if breaking_changes:
            breaking_files = []
            for bc in breaking_changes:
                if bc.file and bc.file not in breaking_files:
                    breaking_files.append(bc.file)
            recommendations.append(Recommendation(
                id="review-breaking-changes",
                type=RecommendationType.REVIEW_REQUIRED,
                priority="high",
                title="Review Breaking Changes",
                description=f"{len(breaking_changes)} breaking changes detected. "
                            f"Careful review required.",
                affected_files=breaking_files,
            ))
            recommendations.append(Recommendation(
                id="create-migration-plan",
                type=RecommendationType.MIGRATION,
                priority="high",
                title="Create Migration Plan",
                description="Document migration steps for consumers of changed APIs or schemas",
                related_files=list(affected_files),
            ))

        if len(affected_nodes) > self.config.large_impact_threshold:
            recommendations.append(Recommendation(
                id="large-impact-warning",
                type=RecommendationType.REFACTOR,
                priority="medium",
                title="Consider Breaking Down Change",
                description=f"This change affects {len(affected_nodes)} nodes. "
                            f"Consider breaking it into smaller changes.",
                affected_files=list(affected_files),
            ))

        if change.type is ChangeType.MODIFY_SCHEMA:
            recommendations.append(Recommendation(
                id="backup-database",
                type=RecommendationType.MIGRATION,
                priority="high",
                title="Backup Database",
                description="Create database backup before applying schema changes",
            ))

        return recommendations
