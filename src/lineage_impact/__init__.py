"""Cross-layer lineage graphs and change impact analysis."""

from .models import (
    APICall,
    Column,
    Component,
    DatabaseQuery,
    EdgeType,
    Endpoint,
    EndpointParameter,
    ForeignKey,
    GraphMetadata,
    Layer,
    LineageContext,
    LineageEdge,
    LineageGraph,
    LineageNode,
    NodeType,
    Table,
)
from .config import LineageConfig, MatchSignal
from .exceptions import ChangeRequestValidationError, ConfigurationError, LineageError
from .frontend_backend import FrontendBackendConnector
from .backend_database import BackendDatabaseConnector
from .graph_builder import LineageGraphBuilder
from .change_request import (
    ChangeClassifier,
    ChangeRequest,
    ChangeRequestParser,
    ChangeType,
    KeywordChangeClassifier,
    Priority,
)
from .impact_models import BreakingChange, ImpactAnalysis, Recommendation
from .impact_analyzer import ImpactAnalyzer
from .coverage_augmenter import TestCoverageAugmenter, TestFile
from .engine import LineageImpactEngine

__all__ = [
    "APICall",
    "Column",
    "Component",
    "DatabaseQuery",
    "EdgeType",
    "Endpoint",
    "EndpointParameter",
    "ForeignKey",
    "GraphMetadata",
    "Layer",
    "LineageContext",
    "LineageEdge",
    "LineageGraph",
    "LineageNode",
    "NodeType",
    "Table",
    "LineageConfig",
    "MatchSignal",
    "LineageError",
    "ChangeRequestValidationError",
    "ConfigurationError",
    "FrontendBackendConnector",
    "BackendDatabaseConnector",
    "LineageGraphBuilder",
    "ChangeClassifier",
    "ChangeRequest",
    "ChangeRequestParser",
    "ChangeType",
    "KeywordChangeClassifier",
    "Priority",
    "BreakingChange",
    "ImpactAnalysis",
    "Recommendation",
    "ImpactAnalyzer",
    "TestCoverageAugmenter",
    "TestFile",
    "LineageImpactEngine",
]
