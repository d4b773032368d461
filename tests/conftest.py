"""
Pytest fixtures for bizgraph testing.

Provides shared fixtures for:
- A sample Todo application (component facts + business context)
- The pipeline stages run on that sample
- A component fact factory for small hand-built hierarchies
"""

import copy
import json
import sys
from pathlib import Path

import pytest

# Add project root so the bizgraph package imports without installation
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bizgraph.business_graph_builder import BusinessGraphBuilder
from bizgraph.component_business_mapper import ComponentBusinessMapper
from bizgraph.facts import BusinessContext, ComponentFact, ProjectFacts
from bizgraph.journey_tracer import JourneyTracer


# ============================================================================
# Sample Todo application
# ============================================================================

SAMPLE_FACTS = {
    "components": [
        {
            "name": "Header",
            "filePath": "src/components/Header.tsx",
            "type": "function",
            "props": [{"name": "user", "type": "User", "isRequired": True}],
            "hooks": [{"name": "useUser", "type": "custom"}],
            "children": ["UserAvatar"],
        },
        {
            "name": "UserAvatar",
            "filePath": "src/components/UserAvatar.tsx",
            "props": [{"name": "user", "type": "User"}, {"name": "size", "type": "string"}],
            "hooks": [],
            "children": [],
        },
        {
            "name": "Dashboard",
            "filePath": "src/components/Dashboard.tsx",
            "props": [],
            "hooks": [
                {"name": "useUser", "type": "custom"},
                {"name": "useState", "type": "state"},
                {"name": "useEffect", "type": "effect"},
                {"name": "useMemo", "type": "memo"},
            ],
            "children": ["TodoSummary", "RecentActivity"],
        },
        {
            "name": "TodoSummary",
            "filePath": "src/components/TodoSummary.tsx",
            "props": [{"name": "items", "type": "Todo[]"}],
            "hooks": [],
            "children": [],
        },
        {
            "name": "RecentActivity",
            "filePath": "src/components/RecentActivity.tsx",
            "props": [{"name": "items", "type": "Activity[]"}],
            "hooks": [],
            "children": [],
        },
        {
            "name": "TodoList",
            "filePath": "src/components/TodoList.tsx",
            "props": [
                {"name": "items", "type": "Todo[]", "isRequired": True},
                {"name": "onToggle", "type": "function"},
                {"name": "onDelete", "type": "function"},
            ],
            "hooks": [{"name": "useState", "type": "state"}],
            "children": ["TodoItem"],
        },
        {
            "name": "TodoItem",
            "filePath": "src/components/TodoItem.tsx",
            "props": [
                {"name": "todo", "type": "Todo"},
                {"name": "onToggle", "type": "function"},
                {"name": "onDelete", "type": "function"},
            ],
            "hooks": [],
            "children": [],
        },
        {
            "name": "CreateTodoForm",
            "filePath": "src/components/CreateTodoForm.tsx",
            "props": [{"name": "onSubmit", "type": "function", "isRequired": True}],
            "hooks": [{"name": "useState", "type": "state"}],
            "children": [],
        },
        {
            "name": "UserProfile",
            "filePath": "src/components/UserProfile.tsx",
            "props": [],
            "hooks": [
                {"name": "useUser", "type": "custom"},
                {"name": "useState", "type": "state"},
                {"name": "useEffect", "type": "effect"},
                {"name": "useMemo", "type": "memo"},
            ],
            "children": ["UserAvatar"],
        },
        {
            "name": "LoginPage",
            "filePath": "src/pages/LoginPage.tsx",
            "props": [{"name": "onSubmit", "type": "function"}],
            "hooks": [{"name": "useAuth", "type": "custom"}],
            "children": [],
        },
    ],
    "files": [
        {"path": "src/components/Header.tsx", "imports": [{"source": "react"}, {"source": "react-router-dom"}]},
        {"path": "src/components/Dashboard.tsx", "imports": [{"source": "react"}, {"source": "../services/apiService"}]},
        {"path": "src/components/UserProfile.tsx", "imports": [{"source": "../services/apiService"}]},
    ],
    "dataFlows": [
        {"from": "TodoList", "to": "TodoItem", "type": "props", "data": "todo"},
    ],
    "businessContext": {
        "userStories": [
            {"id": "us-1", "title": "Create a task", "description": "As a user I want to create tasks",
             "priority": "high", "confidence": 0.8, "storyType": "feature",
             "businessCapability": "Task Management", "complexity": "medium",
             "sourceComponents": ["CreateTodoForm"], "acceptanceCriteria": ["Title is required"]},
            {"id": "us-2", "title": "View task list", "description": "As a user I want to see my tasks",
             "priority": "medium", "confidence": 0.7, "sourceComponents": ["TodoList"]},
            {"id": "us-3", "title": "Manage profile", "description": "As a user I want to edit my profile",
             "priority": "medium", "confidence": 0.6, "sourceComponents": ["UserProfile"]},
            {"id": "us-4", "title": "See overview", "description": "As a user I want an overview",
             "priority": "low", "confidence": 0.5, "sourceComponents": ["Dashboard"]},
            {"id": "us-5", "title": "Export data", "description": "As a user I want to export my tasks",
             "priority": "low", "confidence": 0.3, "sourceComponents": []},
        ],
        "capabilities": [
            {"id": "task-management", "name": "Task Management", "description": "Create and track tasks",
             "businessValue": "core", "userStories": ["us-1", "us-2"],
             "components": ["TodoList", "TodoItem", "CreateTodoForm"], "dataEntities": ["Task"],
             "operations": [{"name": "create"}, {"name": "update"}, {"name": "delete"}]},
            {"id": "user-auth", "name": "User Authentication", "description": "Identify users",
             "businessValue": "supporting", "userStories": ["us-3"],
             "components": ["UserProfile", "Header", "UserAvatar"], "dataEntities": ["User"],
             "operations": [{"name": "login"}]},
            {"id": "dashboard", "name": "Dashboard Analytics", "description": "Overview of activity",
             "businessValue": "supporting", "userStories": ["us-4"],
             "components": ["Dashboard", "TodoSummary", "RecentActivity", "TodoList"],
             "dataEntities": ["Task", "User"], "operations": []},
        ],
        "dataModel": [
            {"name": "Task", "attributes": ["id", "title", "completed"],
             "relationships": [{"target": "User", "type": "belongs_to"}],
             "operations": ["create", "read", "update", "delete"], "businessPurpose": "Unit of work"},
            {"name": "User", "attributes": ["id", "name", "email"], "relationships": [],
             "operations": ["read", "update"], "businessPurpose": "Application user"},
            {"name": "AuditLog", "attributes": ["id"], "relationships": [], "operations": [],
             "businessPurpose": "Record of changes"},
        ],
        "businessRules": [
            {"id": "rule-1", "description": "Task title is required", "category": "validation",
             "implementation": ["CreateTodoForm"], "affectedEntities": ["Task"],
             "conditions": ["title is empty"], "actions": ["reject submission"]},
        ],
        "personas": [
            {"id": "persona-owner", "name": "Task Owner", "description": "Manages their own tasks",
             "goals": ["Stay organized"], "capabilities": ["task-management"]},
            {"id": "persona-admin", "name": "Administrator", "description": "Oversees usage",
             "goals": ["Monitor activity"], "capabilities": ["dashboard"]},
        ],
    },
}


@pytest.fixture
def sample_facts():
    """Raw sample facts dict (camelCase, as produced upstream)."""
    return copy.deepcopy(SAMPLE_FACTS)


@pytest.fixture
def facts_file(tmp_path, sample_facts):
    """Sample facts written to a JSON file."""
    path = tmp_path / "project_facts.json"
    path.write_text(json.dumps(sample_facts), encoding="utf-8")
    return path


@pytest.fixture
def project(sample_facts):
    return ProjectFacts.from_dict(sample_facts)


@pytest.fixture
def context(sample_facts):
    return BusinessContext.from_dict(sample_facts["businessContext"])


@pytest.fixture
def component_graph(project, context):
    mapper = ComponentBusinessMapper(project)
    return mapper.map_components_to_business_features(
        context.user_stories, context.capabilities, context.data_model
    )


@pytest.fixture
def journey_map(project, component_graph):
    return JourneyTracer(project, component_graph.component_mappings).transform_data_flows_to_journeys()


@pytest.fixture
def builder():
    return BusinessGraphBuilder()


@pytest.fixture
def business_graph(builder, context, component_graph, journey_map):
    return builder.build_graph(context, component_graph, journey_map)


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_component():
    """Build a ComponentFact from plain names."""
    def _make(name, props=(), hooks=(), children=(), file_path="", imports=()):
        return ComponentFact.from_dict({
            "name": name,
            "filePath": file_path,
            "props": list(props),
            "hooks": list(hooks),
            "children": list(children),
            "imports": list(imports),
        })
    return _make
