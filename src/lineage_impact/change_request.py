"""Parsing and classification of change requests."""

import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .exceptions import ChangeRequestValidationError
from .logger import get_logger
from .models import Layer


class ChangeType(str, Enum):
    ADD_FEATURE = "add-feature"
    MODIFY_FEATURE = "modify-feature"
    REMOVE_FEATURE = "remove-feature"
    MODIFY_API = "modify-api"
    MODIFY_SCHEMA = "modify-schema"
    REFACTOR = "refactor"
    BUG_FIX = "bug-fix"
    OTHER = "other"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


ALL_LAYERS = [Layer.FRONTEND, Layer.BACKEND, Layer.DATABASE]


@dataclass
class ChangeRequest:
    """A typed, classified description of a proposed change."""
    id: str
    description: str
    type: ChangeType = ChangeType.MODIFY_FEATURE
    affected_areas: List[Layer] = field(default_factory=lambda: list(ALL_LAYERS))
    priority: Priority = Priority.MEDIUM
    target_files: List[str] = field(default_factory=list)
    target_endpoints: List[str] = field(default_factory=list)
    target_tables: List[str] = field(default_factory=list)
    target_components: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "type": self.type.value,
            "affectedAreas": [a.value for a in self.affected_areas],
            "priority": self.priority.value,
            "targetFiles": list(self.target_files),
            "targetEndpoints": list(self.target_endpoints),
            "targetTables": list(self.target_tables),
            "targetComponents": list(self.target_components),
            "metadata": dict(self.metadata),
        }


@dataclass
class ChangeTargets:
    """Identifiers named by a change description."""
    files: List[str] = field(default_factory=list)
    endpoints: List[str] = field(default_factory=list)
    tables: List[str] = field(default_factory=list)
    components: List[str] = field(default_factory=list)


class ChangeRequestInput(BaseModel):
    """Schema for partially structured change requests."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    description: str
    type: Optional[ChangeType] = None
    affected_areas: Optional[List[Layer]] = None
    priority: Optional[Priority] = None
    target_files: Optional[List[str]] = None
    target_endpoints: Optional[List[str]] = None
    target_tables: Optional[List[str]] = None
    target_components: Optional[List[str]] = None
    metadata: Dict[str, Any] = {}

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Change request must have a description")
        return value


class ChangeClassifier(ABC):
    """Policy that turns a free-text description into change attributes."""

    @abstractmethod
    def classify_type(self, description: str) -> ChangeType:
        """Infer the change type."""

    @abstractmethod
    def infer_areas(self, description: str) -> List[Layer]:
        """Infer the affected layers."""

    @abstractmethod
    def infer_priority(self, description: str) -> Priority:
        """Infer the priority."""


def _mentions(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(re.search(r"\b" + re.escape(keyword), text) for keyword in keywords)


class KeywordChangeClassifier(ChangeClassifier):
    """
    Ordered keyword rules.

    The first rule whose keywords appear in the description wins, so rule
    order is part of the policy. Keywords match at word starts.
    """

    TYPE_RULES: List[Tuple[ChangeType, Tuple[str, ...]]] = [
        (ChangeType.MODIFY_API, ("endpoint", "api", "route")),
        (ChangeType.MODIFY_SCHEMA, ("schema", "table", "database", "model")),
        (ChangeType.MODIFY_FEATURE, ("component", "ui", "page")),
        (ChangeType.ADD_FEATURE, ("add", "new")),
        (ChangeType.REMOVE_FEATURE, ("remove", "delete")),
        (ChangeType.BUG_FIX, ("bug", "fix")),
    ]

    AREA_RULES: List[Tuple[Layer, Tuple[str, ...]]] = [
        (Layer.FRONTEND, ("frontend", "ui", "component")),
        (Layer.BACKEND, ("backend", "api", "endpoint")),
        (Layer.DATABASE, ("database", "schema", "table")),
    ]

    PRIORITY_RULES: List[Tuple[Priority, Tuple[str, ...]]] = [
        (Priority.CRITICAL, ("critical", "urgent", "bug")),
        (Priority.HIGH, ("important", "high")),
        (Priority.LOW, ("low", "nice-to-have", "nice to have")),
    ]

    def classify_type(self, description: str) -> ChangeType:
        lower = description.lower()
        for change_type, keywords in self.TYPE_RULES:
            if _mentions(lower, keywords):
                return change_type
        return ChangeType.MODIFY_FEATURE

    def infer_areas(self, description: str) -> List[Layer]:
        lower = description.lower()
        areas = [layer for layer, keywords in self.AREA_RULES if _mentions(lower, keywords)]
        return areas or list(ALL_LAYERS)

    def infer_priority(self, description: str) -> Priority:
        lower = description.lower()
        for priority, keywords in self.PRIORITY_RULES:
            if _mentions(lower, keywords):
                return priority
        return Priority.MEDIUM


_FILE_TARGET = re.compile(r"\b(?:file|path):\s*([^\s,]+)", re.IGNORECASE)
_ENDPOINT_TARGET = re.compile(r"\b(?:endpoint|route|api):\s*([^\s,]+)", re.IGNORECASE)
_TABLE_TARGET = re.compile(r"\b(?:table|model):\s*([a-zA-Z_][a-zA-Z0-9_]*)", re.IGNORECASE)
_COMPONENT_TARGET = re.compile(r"\b(?:component|page):\s*([a-zA-Z_][a-zA-Z0-9_]*)", re.IGNORECASE)


def generate_change_id() -> str:
    """Generate a process-unique change id."""
    return f"change-{uuid.uuid4().hex}"


def extract_targets(description: str) -> ChangeTargets:
    """Extract ``file:``, ``endpoint:``, ``table:`` and ``component:`` targets."""
    return ChangeTargets(
        files=_unique(_FILE_TARGET.findall(description)),
        endpoints=_unique(_ENDPOINT_TARGET.findall(description)),
        tables=_unique(_TABLE_TARGET.findall(description)),
        components=_unique(_COMPONENT_TARGET.findall(description)),
    )


def resolve_targets(change: ChangeRequest) -> ChangeTargets:
    """Merge explicit targets with those named in the description, explicit first."""
    extracted = extract_targets(change.description)
    return ChangeTargets(
        files=_unique(list(change.target_files) + extracted.files),
        endpoints=_unique(list(change.target_endpoints) + extracted.endpoints),
        tables=_unique(list(change.target_tables) + extracted.tables),
        components=_unique(list(change.target_components) + extracted.components),
    )


def _unique(values: List[str]) -> List[str]:
    result = []
    for value in values:
        value = value.strip()
        if value and value not in result:
            result.append(value)
    return result


class ChangeRequestParser:
    """
    Normalizes free-text or structured change descriptions into ChangeRequests.

    Classification of free text is delegated to a ChangeClassifier so the
    keyword policy can be swapped without touching the analyzer.
    """

    def __init__(self, classifier: Optional[ChangeClassifier] = None):
        self.classifier = classifier or KeywordChangeClassifier()
        self.logger = get_logger()

    def parse(self, change_input: Union[str, Dict[str, Any], ChangeRequest]) -> ChangeRequest:
        """
        Parse a change request.

        Args:
            change_input: Free-text description, a mapping with request
                fields (snake_case or camelCase), or a ChangeRequest

        Returns:
            Validated ChangeRequest with defaults filled in and targets merged

        Raises:
            ChangeRequestValidationError: If the input has no description or
                carries invalid field values
        """
        if isinstance(change_input, str):
            change = self._parse_text(change_input)
        elif isinstance(change_input, ChangeRequest):
            change = self._parse_structured(
                {f.name: getattr(change_input, f.name) for f in fields(ChangeRequest)}
            )
        elif isinstance(change_input, dict):
            change = self._parse_structured(change_input)
        else:
            raise ChangeRequestValidationError(
                "Change request must be a string, a mapping or a ChangeRequest",
                details={"input_type": type(change_input).__name__},
            )

        targets = resolve_targets(change)
        change.target_files = targets.files
        change.target_endpoints = targets.endpoints
        change.target_tables = targets.tables
        change.target_components = targets.components

        self.logger.debug(f"Parsed change request {change.id}: type={change.type.value}, "
                          f"priority={change.priority.value}")
        return change

    def _parse_text(self, description: str) -> ChangeRequest:
        if not description.strip():
            raise ChangeRequestValidationError("Change request must have a description")

        return ChangeRequest(
            id=generate_change_id(),
            description=description,
            type=self.classifier.classify_type(description),
            affected_areas=self.classifier.infer_areas(description),
            priority=self.classifier.infer_priority(description),
        )

    def _parse_structured(self, data: Dict[str, Any]) -> ChangeRequest:
        try:
            parsed = ChangeRequestInput.model_validate(data)
        except ValidationError as e:
            raise ChangeRequestValidationError(
                "Invalid change request",
                details={"errors": e.errors(include_url=False)},
            ) from e

        return ChangeRequest(
            id=parsed.id or generate_change_id(),
            description=parsed.description,
            type=parsed.type or ChangeType.MODIFY_FEATURE,
            affected_areas=list(parsed.affected_areas) if parsed.affected_areas else list(ALL_LAYERS),
            priority=parsed.priority or Priority.MEDIUM,
            target_files=list(parsed.target_files or []),
            target_endpoints=list(parsed.target_endpoints or []),
            target_tables=list(parsed.target_tables or []),
            target_components=list(parsed.target_components or []),
            metadata=dict(parsed.metadata),
        )
