"""
Tests for input fact loading.

Tests verify:
- camelCase and snake_case keys are both accepted
- nested child facts are flattened into the component table
- file imports are attached to components by file path
- facts files are validated on load
"""

import json

import pytest

from bizgraph.facts import (
    BusinessContext,
    ComponentFact,
    DataFlowFact,
    ProjectFacts,
    UserStory,
    load_facts_file,
)
from bizgraph.json_utils import JSONValidationError


class TestComponentFact:
    """Tests for ComponentFact parsing"""

    def test_camel_case_fields(self):
        """filePath and isRequired are read from upstream output"""
        fact = ComponentFact.from_dict({
            "name": "TodoList",
            "filePath": "src/TodoList.tsx",
            "props": [{"name": "items", "type": "Todo[]", "isRequired": True}],
            "hooks": [{"name": "useState", "type": "state"}],
            "children": ["TodoItem"],
        })

        assert fact.file_path == "src/TodoList.tsx"
        assert fact.props[0].is_required is True
        assert fact.props[0].type == "Todo[]"
        assert fact.has_hook("useState", "useReducer")
        assert fact.children == ["TodoItem"]

    def test_plain_string_entries(self):
        """Props, hooks and imports may be given as bare names"""
        fact = ComponentFact.from_dict({
            "name": "Widget",
            "props": ["onClick"],
            "hooks": ["useEffect"],
            "imports": ["react-router-dom"],
        })

        assert fact.prop_names() == ["onClick"]
        assert fact.props[0].type == "unknown"
        assert fact.has_hook("useEffect")
        assert fact.imports == ["react-router-dom"]

    def test_missing_fields_default_to_empty(self):
        """A bare name is a valid component"""
        fact = ComponentFact.from_dict({"name": "Empty"})

        assert fact.props == []
        assert fact.hooks == []
        assert fact.children == []
        assert fact.type == "function"


class TestProjectFacts:
    """Tests for the project fact table"""

    def test_nested_children_are_flattened(self):
        """Child facts given as dicts become components of their own"""
        project = ProjectFacts.from_dict({
            "components": [
                {"name": "App", "children": [{"name": "Page", "children": [{"name": "Button"}]}]},
            ],
        })

        assert [c.name for c in project.components] == ["App", "Page", "Button"]
        assert project.get_component("App").children == ["Page"]
        assert project.has_parent(project.get_component("Button"))

    def test_duplicate_names_keep_first(self):
        """The first fact for a name wins"""
        project = ProjectFacts([
            ComponentFact(name="A", file_path="first.tsx"),
            ComponentFact(name="A", file_path="second.tsx"),
        ])

        assert len(project.components) == 1
        assert project.get_component("A").file_path == "first.tsx"

    def test_file_imports(self, project):
        """Imports declared on the component's file are visible to it"""
        header = project.get_component("Header")
        assert "react-router-dom" in project.file_imports(header)

        avatar = project.get_component("UserAvatar")
        assert project.file_imports(avatar) == []

    def test_has_parent(self, project):
        """Components listed as another component's child have a parent"""
        assert project.has_parent(project.get_component("TodoItem"))
        assert not project.has_parent(project.get_component("TodoList"))

    def test_data_flows(self, project):
        """from/to keys are read as source/target"""
        assert project.data_flows == [DataFlowFact(source="TodoList", target="TodoItem", type="props", data="todo")]


class TestBusinessContext:
    """Tests for business context parsing"""

    def test_sample_context(self, context):
        """All five collections are read"""
        assert len(context.user_stories) == 5
        assert len(context.capabilities) == 3
        assert len(context.data_model) == 3
        assert len(context.business_rules) == 1
        assert len(context.personas) == 2

    def test_capability_fields(self, context):
        capability = context.capabilities[0]
        assert capability.id == "task-management"
        assert capability.user_stories == ["us-1", "us-2"]
        assert capability.data_entities == ["Task"]
        assert capability.business_value == "core"

    def test_snake_case_keys(self):
        """snake_case input is accepted as well"""
        context = BusinessContext.from_dict({
            "user_stories": [{"id": "us-1", "source_components": ["A"]}],
            "data_model": [{"name": "Task", "business_purpose": "Work"}],
        })

        assert context.user_stories[0].source_components == ["A"]
        assert context.data_model[0].business_purpose == "Work"

    def test_story_defaults(self):
        """Missing priority and complexity fall back to the lowest tier"""
        story = UserStory.from_dict({"id": "us-9"})

        assert story.priority == "low"
        assert story.complexity == "simple"
        assert story.confidence == 0.0

    def test_to_dict_round_trips_raw(self, sample_facts, context):
        """to_dict returns the records as they were given"""
        data = context.to_dict()
        assert data["user_stories"] == sample_facts["businessContext"]["userStories"]
        assert data["personas"] == sample_facts["businessContext"]["personas"]

    def test_empty_context(self):
        context = BusinessContext.from_dict(None)
        assert context.user_stories == []
        assert context.capabilities == []


class TestLoadFactsFile:
    """Tests for load_facts_file()"""

    def test_load_sample(self, facts_file):
        project, context = load_facts_file(facts_file)

        assert len(project.components) == 10
        assert len(context.capabilities) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_facts_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"components": [', encoding="utf-8")

        with pytest.raises(JSONValidationError, match="Invalid JSON syntax"):
            load_facts_file(path)

    def test_wrong_shape(self, tmp_path):
        """components must be a list"""
        path = tmp_path / "shape.json"
        path.write_text(json.dumps({"components": {"name": "A"}}), encoding="utf-8")

        with pytest.raises(JSONValidationError, match="Schema validation failed"):
            load_facts_file(path)

    def test_missing_business_context(self, tmp_path):
        """A facts file without business context yields an empty context"""
        path = tmp_path / "structure_only.json"
        path.write_text(json.dumps({"components": [{"name": "A"}]}), encoding="utf-8")

        project, context = load_facts_file(path)

        assert [c.name for c in project.components] == ["A"]
        assert context.capabilities == []
