"""
Tests for the data-flow-to-journey tracer.

Tests verify:
- entry point selection and deterministic journey ids
- depth-first pre-order traversal that terminates on cyclic hierarchies
- outcomes, alternative paths and metrics per journey
- cross-journey patterns, the deduplicated data-flow graph and relationships
"""

import pytest

from bizgraph.component_business_mapper import ComponentBusinessMapper
from bizgraph.facts import ProjectFacts
from bizgraph.journey_tracer import (
    DataOperation,
    JourneyTracer,
    extract_step_sequences,
    pattern_key,
)


def _trace(*components):
    project = ProjectFacts(components)
    mappings = ComponentBusinessMapper(project).map_components()
    return JourneyTracer(project, mappings).transform_data_flows_to_journeys()


def _journey(journey_map, journey_id):
    return next(j for j in journey_map.journeys if j.id == journey_id)


# ============================================================================
# Entry points and traversal
# ============================================================================

class TestEntryPoints:
    """Tests for entry point selection"""

    def test_sample_entry_points(self, journey_map):
        assert [j.id for j in journey_map.journeys] == [
            "journey-dashboard",
            "journey-todolist",
            "journey-createtodoform",
            "journey-loginpage",
        ]

    def test_nested_list_is_not_an_entry_point(self, make_component):
        journey_map = _trace(
            make_component("Panel", children=["NestedList"]),
            make_component("NestedList", props=[{"name": "items"}]),
        )
        assert journey_map.journeys == []

    def test_entry_point_without_steps_is_dropped(self, make_component):
        journey_map = _trace(make_component("EmptyPage"))
        assert journey_map.journeys == []

    def test_ids_are_deterministic(self, project, component_graph):
        first = JourneyTracer(project, component_graph.component_mappings).transform_data_flows_to_journeys()
        second = JourneyTracer(project, component_graph.component_mappings).transform_data_flows_to_journeys()

        assert [j.id for j in first.journeys] == [j.id for j in second.journeys]
        assert first.to_dict() == second.to_dict()

    def test_ids_unique_when_names_differ_by_case(self, make_component):
        journey_map = _trace(
            make_component("HomePage", props=[{"name": "onClick"}]),
            make_component("homePage", props=[{"name": "onClick"}]),
        )

        assert [j.id for j in journey_map.journeys] == ["journey-homepage", "journey-homepage-2"]
        assert [s.component for s in journey_map.journeys[1].steps] == ["homePage"]


class TestTraversal:
    """Tests for step tracing"""

    def test_cyclic_hierarchy_terminates(self, make_component):
        """Each component is visited at most once per journey"""
        journey_map = _trace(
            make_component("HomePage", props=[{"name": "onClick"}], children=["Loop"]),
            make_component("Loop", props=[{"name": "onClick"}], children=["HomePage"]),
        )

        journey = _journey(journey_map, "journey-homepage")
        assert [s.id for s in journey.steps] == ["step-HomePage-0", "step-Loop-0"]

    def test_self_reference_terminates(self, make_component):
        journey_map = _trace(
            make_component("HomePage", props=[{"name": "onClick"}], children=["HomePage"]),
        )
        assert len(journey_map.journeys[0].steps) == 1

    def test_pre_order_depth_first(self, make_component):
        """First child's subtree is walked before the second child"""
        journey_map = _trace(
            make_component("HomePage", props=[{"name": "onClick"}], children=["First", "Second"]),
            make_component("First", props=[{"name": "onClick"}], children=["Deep"]),
            make_component("Deep", props=[{"name": "onClick"}]),
            make_component("Second", props=[{"name": "onClick"}]),
        )

        steps = _journey(journey_map, "journey-homepage").steps
        assert [s.component for s in steps] == ["HomePage", "First", "Deep", "Second"]
        assert [s.order for s in steps] == [1, 2, 3, 2]

    def test_unknown_children_skipped(self, make_component):
        journey_map = _trace(
            make_component("HomePage", props=[{"name": "onClick"}], children=["Ghost"]),
        )
        assert [s.component for s in journey_map.journeys[0].steps] == ["HomePage"]

    def test_todo_list_steps(self, journey_map):
        journey = _journey(journey_map, "journey-todolist")

        assert [s.id for s in journey.steps] == [
            "step-TodoList-0", "step-TodoList-1", "step-TodoList-2", "step-TodoList-3",
            "step-TodoItem-0", "step-TodoItem-1",
        ]
        assert [s.order for s in journey.steps] == [1, 2, 3, 4, 5, 6]
        assert [s.type for s in journey.steps] == [
            "interaction", "interaction", "process", "process", "interaction", "interaction",
        ]

    def test_next_steps_link_consecutive_steps(self, journey_map):
        steps = _journey(journey_map, "journey-todolist").steps

        for current, following in zip(steps, steps[1:]):
            assert current.next_steps == [following.id]
        assert steps[-1].next_steps == []

    def test_state_step_carries_data_operation(self, journey_map):
        journey = _journey(journey_map, "journey-createtodoform")
        state_step = journey.steps[1]

        assert state_step.data_transformation == DataOperation(operation="create", entity="Task")
        assert journey.steps[0].data_transformation is None


# ============================================================================
# Per-journey inference
# ============================================================================

class TestJourneyInference:
    """Tests for name, persona, trigger and goal"""

    def test_dashboard_journey(self, journey_map):
        journey = _journey(journey_map, "journey-dashboard")

        assert journey.name == "Dashboard Overview Journey"
        assert journey.persona == "authenticated-user"
        assert journey.goal == "Provide business insights and overview"
        assert "User is authenticated" in journey.trigger.preconditions
        assert journey.business_value == "Offers insights and visibility into business operations"

    def test_form_trigger(self, journey_map):
        journey = _journey(journey_map, "journey-createtodoform")

        assert journey.name == "Task Creation Journey"
        assert journey.persona == "guest-user"
        assert journey.trigger.description == "User initiates form interaction"

    def test_generic_name_and_admin_persona(self, make_component):
        journey_map = _trace(make_component("AdminPage", props=[{"name": "onClick"}]))
        journey = journey_map.journeys[0]

        assert journey.name == "AdminPage User Journey"
        assert journey.persona == "admin-user"
        assert journey.trigger.preconditions == []


class TestOutcomesAndPaths:
    """Tests for outcomes and alternative paths"""

    def test_outcomes(self, journey_map):
        assert [o.type for o in _journey(journey_map, "journey-dashboard").outcomes] == \
            ["success", "failure", "partial"]
        assert [o.type for o in _journey(journey_map, "journey-todolist").outcomes] == \
            ["success", "partial"]
        assert [o.type for o in _journey(journey_map, "journey-loginpage").outcomes] == ["success"]

    def test_alternative_path_loops_back(self, journey_map):
        journey = _journey(journey_map, "journey-createtodoform")
        path = journey.alternative_paths[0]

        assert path.id == "alt-path-error-step-CreateTodoForm-0"
        assert path.from_step == path.to_step == "step-CreateTodoForm-0"
        assert path.probability == 0.1

        error, retry = path.steps
        assert error.id == "step-CreateTodoForm-0-error"
        assert error.next_steps == [retry.id]
        assert retry.next_steps == ["step-CreateTodoForm-0"]

    def test_one_path_per_decision_step(self, journey_map):
        """Patterns with more than one outcome are decision points"""
        journey = _journey(journey_map, "journey-todolist")

        assert [p.from_step for p in journey.alternative_paths] == ["step-TodoList-2", "step-TodoList-3"]
        assert journey.metrics.decision_points == 2

    def test_no_decision_no_paths(self, make_component):
        journey_map = _trace(make_component("HomePage", props=[{"name": "onToggle"}]))
        assert journey_map.journeys[0].alternative_paths == []


class TestJourneyMetrics:
    """Tests for journey metrics"""

    def test_todo_list_metrics(self, journey_map):
        metrics = _journey(journey_map, "journey-todolist").metrics

        assert metrics.estimated_duration == pytest.approx(21.5)
        assert metrics.complexity == pytest.approx(8.0)
        assert metrics.user_effort == 8
        assert metrics.system_load == 0
        assert metrics.integration_points == 0

    def test_complexity_capped(self, journey_map):
        metrics = _journey(journey_map, "journey-dashboard").metrics

        assert metrics.complexity == 10
        assert metrics.integration_points == 1
        assert metrics.system_load == 5

    def test_data_points_counted(self, journey_map):
        journey = _journey(journey_map, "journey-createtodoform")
        expected = sum(len(f.data_in) + len(f.data_out) for f in journey.data_flow)

        assert journey.metrics.data_points == expected
        assert [f.step_id for f in journey.data_flow] == [s.id for s in journey.steps]


# ============================================================================
# Cross-journey analysis
# ============================================================================

@pytest.fixture
def shared_children_map(make_component):
    """Two route entry points with the same two children"""
    return _trace(
        make_component("HomePage", children=["A", "B"]),
        make_component("MainView", children=["A", "B"]),
        make_component("A", props=[{"name": "onClick"}]),
        make_component("B", props=[{"name": "onChange"}]),
    )


class TestDataFlowGraph:
    """Tests for the data-flow graph"""

    def test_shared_transition_is_one_edge(self, shared_children_map):
        graph = shared_children_map.data_flow_graph

        assert len(shared_children_map.journeys) == 2
        assert [(e.source, e.target) for e in graph.edges] == [("A", "B")]

    def test_nodes_accumulate_journey_references(self, shared_children_map):
        nodes = {n.id: n for n in shared_children_map.data_flow_graph.nodes}

        assert set(nodes) == {"A", "B"}
        assert nodes["A"].journey_references == ["journey-homepage", "journey-mainview"]

    def test_sample_edges_unique(self, journey_map):
        keys = [(e.source, e.target) for e in journey_map.data_flow_graph.edges]

        assert len(keys) == len(set(keys)) == 7
        assert ("TodoList", "TodoItem") in keys

    def test_criticality(self, journey_map):
        edges = {(e.source, e.target): e for e in journey_map.data_flow_graph.edges}

        assert edges[("TodoList", "TodoItem")].criticality == "low"
        assert edges[("Dashboard", "TodoSummary")].criticality == "high"
        assert edges[("TodoItem", "TodoItem")].criticality == "medium"

    def test_clusters(self, journey_map):
        clusters = {c.name: c for c in journey_map.data_flow_graph.clusters}

        assert set(clusters) == {"Task Management", "General"}
        assert clusters["Task Management"].nodes == ["TodoSummary", "TodoList", "TodoItem", "CreateTodoForm"]
        assert "Task state consistency" in clusters["Task Management"].data_consistency_requirements


class TestCommonPatterns:
    """Tests for recurring step sequences"""

    def test_pattern_shared_by_two_journeys(self, shared_children_map):
        patterns = shared_children_map.common_patterns

        assert len(patterns) == 1
        assert patterns[0].id == "pattern-interaction-Handle-interaction-Handle"
        assert patterns[0].occurrences == ["journey-homepage", "journey-mainview"]
        assert patterns[0].name == "Common Interaction Pattern"

    def test_repeat_within_one_journey_is_not_common(self, journey_map):
        assert journey_map.common_patterns == []

    def test_sequences(self, journey_map):
        steps = _journey(journey_map, "journey-createtodoform").steps
        sequences = extract_step_sequences(steps)

        assert [pattern_key(s) for s in sequences] == ["interaction-Handle->process-Manage"]


class TestJourneyRelationships:
    """Tests for relationships between journeys"""

    def test_authenticated_journey_requires_login(self, journey_map):
        rels = [(r.source, r.target, r.relationship_type) for r in journey_map.journey_relationships]
        assert rels == [("journey-dashboard", "journey-loginpage", "requires")]

    def test_leads_to_on_shared_boundary(self, make_component):
        """HomePage ends in DetailView, which starts its own journey"""
        journey_map = _trace(
            make_component("HomePage", props=[{"name": "onClick"}], children=["DetailView"]),
            make_component("DetailView", props=[{"name": "onClick"}]),
        )
        rels = [(r.source, r.target, r.relationship_type) for r in journey_map.journey_relationships]
        assert ("journey-homepage", "journey-detailview", "leads_to") in rels
