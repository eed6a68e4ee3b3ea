"""Result models produced by impact analysis."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .change_request import ChangeRequest


class ImpactType(str, Enum):
    DIRECT = "direct"
    INDIRECT = "indirect"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BreakingChangeType(str, Enum):
    API_PARAMETER_REMOVED = "api-parameter-removed"
    API_PARAMETER_ADDED_REQUIRED = "api-parameter-added-required"
    API_RESPONSE_CHANGED = "api-response-changed"
    SCHEMA_COLUMN_REMOVED = "schema-column-removed"
    SCHEMA_COLUMN_TYPE_CHANGED = "schema-column-type-changed"
    EXPORT_REMOVED = "export-removed"
    TYPE_INCOMPATIBILITY = "type-incompatibility"
    OTHER = "other"


class RecommendationType(str, Enum):
    CODE_CHANGE = "code-change"
    TEST_UPDATE = "test-update"
    DOCUMENTATION_UPDATE = "documentation-update"
    REFACTOR = "refactor"
    MIGRATION = "migration"
    REVIEW_REQUIRED = "review-required"


@dataclass
class AffectedNode:
    """A graph node reached from the seeds of a change."""
    node_id: str
    node_type: str
    file: str
    layer: str
    impact_type: ImpactType
    impact_reason: str
    severity: Severity
    depth: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "nodeType": self.node_type,
            "file": self.file,
            "layer": self.layer,
            "impactType": self.impact_type.value,
            "impactReason": self.impact_reason,
            "severity": self.severity.value,
            "depth": self.depth,
        }


@dataclass
class BreakingChange:
    """A predicted change that requires consumer-side updates."""
    id: str
    type: BreakingChangeType
    severity: Severity
    description: str
    affected_node: str
    file: str
    impact: str
    line: Optional[int] = None
    migration_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "affectedNode": self.affected_node,
            "file": self.file,
            "line": self.line,
            "impact": self.impact,
            "migrationPath": self.migration_path,
        }


@dataclass
class Recommendation:
    """An action suggested to the author of a change."""
    id: str
    type: RecommendationType
    priority: str  # high, medium, low
    title: str
    description: str
    affected_files: List[str] = field(default_factory=list)
    suggested_changes: List[Dict[str, Any]] = field(default_factory=list)
    related_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "affectedFiles": list(self.affected_files),
            "suggestedChanges": list(self.suggested_changes),
            "relatedFiles": list(self.related_files),
        }


@dataclass
class DependencyPath:
    """Discovery path from a seed node to an affected node."""
    source: str
    target: str
    nodes: List[str]
    edges: List[str]
    direction: str  # forward, backward

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "nodes": list(self.nodes),
            "edges": list(self.edges),
            "type": self.direction,
        }


@dataclass
class DependencyChain:
    chains: List[DependencyPath] = field(default_factory=list)
    max_depth: int = 0
    total_affected: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chains": [c.to_dict() for c in self.chains],
            "maxDepth": self.max_depth,
            "totalAffected": self.total_affected,
        }


@dataclass
class ImpactSummary:
    total_affected_files: int = 0
    total_affected_nodes: int = 0
    critical_impact: int = 0
    high_impact: int = 0
    medium_impact: int = 0
    low_impact: int = 0
    breaking_changes_count: int = 0
    estimated_complexity: Complexity = Complexity.LOW
    estimated_time: int = 0  # hours

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAffectedFiles": self.total_affected_files,
            "totalAffectedNodes": self.total_affected_nodes,
            "criticalImpact": self.critical_impact,
            "highImpact": self.high_impact,
            "mediumImpact": self.medium_impact,
            "lowImpact": self.low_impact,
            "breakingChangesCount": self.breaking_changes_count,
            "estimatedComplexity": self.estimated_complexity.value,
            "estimatedTime": self.estimated_time,
        }


@dataclass
class TestCoverage:
    """How the tests of a repository relate to the files a change touches."""
    __test__ = False

    total_tests: int = 0
    affected_tests: int = 0
    coverage_by_file: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTests": self.total_tests,
            "affectedTests": self.affected_tests,
            "coverageByFile": {k: list(v) for k, v in self.coverage_by_file.items()},
        }


@dataclass
class ImpactAnalysis:
    """Scored, recommendation-bearing result of analyzing one change request."""
    change_request: ChangeRequest
    affected_nodes: List[AffectedNode] = field(default_factory=list)
    affected_files: List[str] = field(default_factory=list)
    dependency_chain: DependencyChain = field(default_factory=DependencyChain)
    breaking_changes: List[BreakingChange] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    summary: ImpactSummary = field(default_factory=ImpactSummary)
    repository: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    affected_tests: Optional[List[str]] = None
    test_coverage: Optional[TestCoverage] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "repository": self.repository,
            "timestamp": self.timestamp.isoformat(),
            "changeRequest": self.change_request.to_dict(),
            "affectedNodes": [n.to_dict() for n in self.affected_nodes],
            "affectedFiles": list(self.affected_files),
            "dependencyChain": self.dependency_chain.to_dict(),
            "breakingChanges": [b.to_dict() for b in self.breaking_changes],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "summary": self.summary.to_dict(),
        }
        if self.affected_tests is not None:
            result["affectedTests"] = list(self.affected_tests)
        if self.test_coverage is not None:
            result["testCoverage"] = self.test_coverage.to_dict()
        return result
