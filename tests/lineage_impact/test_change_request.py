"""Tests for change request parsing and classification."""

import pytest
from hypothesis import given, strategies as st

from lineage_impact.change_request import (
    ChangeClassifier,
    ChangeRequest,
    ChangeRequestParser,
    ChangeType,
    KeywordChangeClassifier,
    Priority,
    extract_targets,
    generate_change_id,
    resolve_targets,
)
from lineage_impact.exceptions import ChangeRequestValidationError
from lineage_impact.models import Layer


class TestKeywordChangeClassifier:
    """Test the ordered keyword rules."""

    def setup_method(self):
        """Set up test fixtures."""
        self.classifier = KeywordChangeClassifier()

    @pytest.mark.parametrize("description,expected", [
        ("Modify the /api/users endpoint to add pagination", ChangeType.MODIFY_API),
        ("Change the route for login", ChangeType.MODIFY_API),
        ("Add a new column to the users table", ChangeType.MODIFY_SCHEMA),
        ("Update the database schema", ChangeType.MODIFY_SCHEMA),
        ("Restyle the profile page", ChangeType.MODIFY_FEATURE),
        ("Add dark mode", ChangeType.ADD_FEATURE),
        ("Remove legacy exports", ChangeType.REMOVE_FEATURE),
        ("Fix crash on startup", ChangeType.BUG_FIX),
        ("Improve wording", ChangeType.MODIFY_FEATURE),
    ])
    def test_classify_type(self, description, expected):
        """Test change type classification from keywords."""
        assert self.classifier.classify_type(description) is expected

    def test_keywords_match_at_word_start(self):
        """Test that keywords only match at the start of a word."""
        # "rapid" contains "api" but not at a word start
        assert self.classifier.classify_type("Rapid prototyping") is ChangeType.MODIFY_FEATURE

    def test_infer_areas(self):
        """Test affected area inference."""
        assert self.classifier.infer_areas("Frontend tweak") == [Layer.FRONTEND]
        assert self.classifier.infer_areas("API and table changes") == [Layer.BACKEND, Layer.DATABASE]
        assert self.classifier.infer_areas("Something vague") == [
            Layer.FRONTEND, Layer.BACKEND, Layer.DATABASE,
        ]

    @pytest.mark.parametrize("description,expected", [
        ("Urgent: login broken", Priority.CRITICAL),
        ("Bug in checkout", Priority.CRITICAL),
        ("Important copy change", Priority.HIGH),
        ("Nice-to-have animation", Priority.LOW),
        ("Tweak spacing", Priority.MEDIUM),
    ])
    def test_infer_priority(self, description, expected):
        """Test priority inference from urgency words."""
        assert self.classifier.infer_priority(description) is expected


class TestTargetExtraction:

    def test_extract_targets(self):
        """Test extraction of paths and identifiers from text."""
        targets = extract_targets(
            "Touch file: src/api/users.ts and endpoint:/api/users, "
            "table: users, model:Orders, component: UserList, route: /login"
        )
        assert targets.files == ["src/api/users.ts"]
        assert targets.endpoints == ["/api/users", "/login"]
        assert targets.tables == ["users", "Orders"]
        assert targets.components == ["UserList"]

    def test_extract_targets_case_insensitive_and_unique(self):
        """Test that extracted targets are deduplicated case-insensitively."""
        targets = extract_targets("TABLE: users and table:users")
        assert targets.tables == ["users"]

    def test_resolve_targets_explicit_first(self):
        """Test that explicit targets come before extracted ones."""
        change = ChangeRequest(
            id="c1",
            description="also table: orders and table: users",
            target_tables=["users"],
        )
        assert resolve_targets(change).tables == ["users", "orders"]

    def test_generated_ids_are_unique(self):
        """Test that generated request ids never repeat."""
        ids = {generate_change_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("change-") for i in ids)


class TestChangeRequestParser:
    """Test parsing of free text and structured input."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = ChangeRequestParser()

    def test_free_text(self):
        """Test parsing a free-text description."""
        change = self.parser.parse("Modify the /api/users endpoint to add pagination endpoint: /api/users")

        assert change.id.startswith("change-")
        assert change.type is ChangeType.MODIFY_API
        assert change.affected_areas == [Layer.BACKEND]
        assert change.priority is Priority.MEDIUM
        assert change.target_endpoints == ["/api/users"]

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_blank_text_rejected(self, text):
        """Test that blank descriptions are rejected."""
        with pytest.raises(ChangeRequestValidationError):
            self.parser.parse(text)

    def test_structured_defaults(self):
        """Test defaults applied to structured input."""
        change = self.parser.parse({"description": "Rework things"})

        assert change.id.startswith("change-")
        assert change.type is ChangeType.MODIFY_FEATURE
        assert change.affected_areas == [Layer.FRONTEND, Layer.BACKEND, Layer.DATABASE]
        assert change.priority is Priority.MEDIUM
        assert change.target_files == []

    def test_structured_camel_case(self):
        """Test structured input with camelCase keys."""
        change = self.parser.parse({
            "id": "cr-1",
            "description": "Drop a column",
            "type": "modify-schema",
            "affectedAreas": ["database"],
            "priority": "high",
            "targetTables": ["users"],
        })

        assert change.id == "cr-1"
        assert change.type is ChangeType.MODIFY_SCHEMA
        assert change.affected_areas == [Layer.DATABASE]
        assert change.priority is Priority.HIGH
        assert change.target_tables == ["users"]

    def test_structured_snake_case(self):
        """Test structured input with snake_case keys."""
        change = self.parser.parse({
            "description": "Tweak",
            "target_files": ["src/a.ts"],
        })
        assert change.target_files == ["src/a.ts"]

    def test_structured_is_not_reclassified(self):
        """Test that an explicit type is kept as given."""
        change = self.parser.parse({"description": "Fix the users table", "type": "refactor"})
        assert change.type is ChangeType.REFACTOR

    def test_empty_areas_default_to_all_layers(self):
        """Test that empty areas default to every layer."""
        change = self.parser.parse({"description": "x", "affectedAreas": []})
        assert change.affected_areas == [Layer.FRONTEND, Layer.BACKEND, Layer.DATABASE]

    @pytest.mark.parametrize("data", [
        {},
        {"description": ""},
        {"description": "   "},
        {"description": "ok", "type": "rewrite-everything"},
        {"description": "ok", "priority": "someday"},
        {"description": "ok", "affectedAreas": ["mobile"]},
    ])
    def test_invalid_structured_input(self, data):
        """Test rejection of invalid structured input."""
        with pytest.raises(ChangeRequestValidationError) as exc_info:
            self.parser.parse(data)
        assert exc_info.value.details["errors"]

    def test_unsupported_input_type(self):
        """Test rejection of unsupported input types."""
        with pytest.raises(ChangeRequestValidationError):
            self.parser.parse(42)

    def test_validation_error_is_value_error(self):
        """Test that validation errors are also ValueErrors."""
        with pytest.raises(ValueError):
            self.parser.parse({})

    def test_change_request_input(self):
        """Test parsing a validated input model."""
        original = ChangeRequest(id="c9", description="Update table: orders",
                                 type=ChangeType.MODIFY_SCHEMA, target_tables=["users"])
        change = self.parser.parse(original)

        assert change.id == "c9"
        assert change.type is ChangeType.MODIFY_SCHEMA
        assert change.target_tables == ["users", "orders"]
        assert original.target_tables == ["users"]

    def test_custom_classifier(self):
        """Test parsing with a custom classifier."""
        class AlwaysRefactor(ChangeClassifier):
            def classify_type(self, description):
                return ChangeType.REFACTOR

            def infer_areas(self, description):
                return [Layer.BACKEND]

            def infer_priority(self, description):
                return Priority.LOW

        change = ChangeRequestParser(AlwaysRefactor()).parse("Modify the users endpoint")
        assert change.type is ChangeType.REFACTOR
        assert change.affected_areas == [Layer.BACKEND]
        assert change.priority is Priority.LOW

    def test_to_dict(self):
        """Test converting a change request to a dictionary."""
        change = self.parser.parse({"id": "c1", "description": "x", "targetFiles": ["a.py"]})
        data = change.to_dict()
        assert data["type"] == "modify-feature"
        assert data["affectedAreas"] == ["frontend", "backend", "database"]
        assert data["targetFiles"] == ["a.py"]


@given(st.text(min_size=1).filter(lambda s: s.strip()))
def test_any_non_blank_text_parses(description):
    """Every non-blank description yields a valid change request."""
    change = ChangeRequestParser().parse(description)
    assert change.description == description
    assert isinstance(change.type, ChangeType)
    assert change.affected_areas
