"""
Data-Flow-to-Journey Tracer

Turns the component hierarchy plus component mappings into user journeys:

1. Entry points are picked by name (pages, views, dashboards, root forms and
   root lists).
2. From each entry point the descendant hierarchy is walked depth-first,
   pre-order, with an explicit stack and a visited set, so cyclic child
   references terminate. Every interaction pattern of a visited component
   becomes one journey step.
3. Each journey gets per-step data flow, outcomes and error-handling
   alternative paths.
4. Across journeys: recurring step sequences become patterns, consecutive
   steps become a deduplicated data-flow graph, and journeys are related
   by shared boundary components and authentication preconditions.

Name-based heuristics go through the classifiers in bizgraph.classifiers;
a subclass can replace any of the ``*_classifier`` attributes.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from bizgraph.classifiers import (
    DATA_ENTITY,
    DATA_FLOW_CLUSTER,
    DATA_OPERATION,
    ENTRY_POINT,
    JOURNEY_GOAL,
    JOURNEY_NAME,
    JOURNEY_VALUE,
)
from bizgraph.component_business_mapper import ComponentMapping, InteractionPattern
from bizgraph.facts import ComponentFact, ProjectFacts

logger = logging.getLogger(__name__)

STEP_TYPE_BY_PATTERN = {
    "user_input": "interaction",
    "display": "process",
    "navigation": "navigation",
    "state_management": "process",
    "api_call": "data_operation",
}

STEP_DURATION_BY_PATTERN = {
    "user_input": 5,
    "display": 1,
    "navigation": 2,
    "state_management": 0.5,
    "api_call": 3,
}

AUTHENTICATED_PRECONDITION = "User is authenticated"


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass
class DataOperation:
    operation: str  # create | read | update | delete | transform | validate
    entity: str
    attributes: List[str] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    transformations: List[str] = field(default_factory=list)


@dataclass
class JourneyStep:
    id: str
    order: float
    type: str  # interaction | process | decision | data_operation | navigation
    description: str
    component: str
    user_action: str = ""
    system_response: str = ""
    data_transformation: Optional[DataOperation] = None
    next_steps: List[str] = field(default_factory=list)
    duration: float = 1


@dataclass
class JourneyTrigger:
    type: str
    description: str
    component: str = ""
    preconditions: List[str] = field(default_factory=list)


@dataclass
class DataPoint:
    name: str
    type: str
    source: str
    validation: List[str] = field(default_factory=list)
    required: bool = False


@dataclass
class JourneyDataFlow:
    step_id: str
    data_in: List[DataPoint] = field(default_factory=list)
    processing: List[str] = field(default_factory=list)
    data_out: List[DataPoint] = field(default_factory=list)
    side_effects: List[str] = field(default_factory=list)


@dataclass
class JourneyOutcome:
    type: str  # success | failure | partial
    description: str
    business_impact: str
    technical_result: str
    measurable_metrics: List[str] = field(default_factory=list)


@dataclass
class AlternativePath:
    id: str
    condition: str
    description: str
    from_step: str
    to_step: str
    probability: float
    steps: List[JourneyStep] = field(default_factory=list)


@dataclass
class JourneyMetrics:
    estimated_duration: float = 0
    complexity: float = 0
    user_effort: int = 0
    system_load: int = 0
    data_points: int = 0
    decision_points: int = 0
    integration_points: int = 0


@dataclass
class UserJourney:
    id: str
    name: str
    persona: str
    goal: str
    trigger: JourneyTrigger
    steps: List[JourneyStep] = field(default_factory=list)
    data_flow: List[JourneyDataFlow] = field(default_factory=list)
    outcomes: List[JourneyOutcome] = field(default_factory=list)
    alternative_paths: List[AlternativePath] = field(default_factory=list)
    metrics: JourneyMetrics = field(default_factory=JourneyMetrics)
    business_value: str = ""

    def step_components(self) -> List[str]:
        """Distinct step components in traversal order."""
        seen: List[str] = []
        for step in self.steps:
            if step.component not in seen:
                seen.append(step.component)
        return seen


@dataclass
class JourneyRelationship:
    source: str
    target: str
    relationship_type: str  # leads_to | requires | alternative_to | extends
    condition: str = ""


@dataclass
class PatternStep:
    type: str
    common_components: List[str]
    data_pattern: str
    frequency: int


@dataclass
class JourneyPattern:
    id: str
    name: str
    description: str
    occurrences: List[str]
    pattern_steps: List[PatternStep]
    business_purpose: str


@dataclass
class DataFlowNode:
    id: str
    type: str
    name: str
    data_operations: List[DataOperation] = field(default_factory=list)
    journey_references: List[str] = field(default_factory=list)


@dataclass
class DataFlowEdge:
    id: str
    source: str
    target: str
    data_type: str
    operation: str
    volume: str
    criticality: str  # low | medium | high | critical


@dataclass
class DataFlowCluster:
    id: str
    name: str
    nodes: List[str]
    purpose: str
    data_consistency_requirements: List[str]


@dataclass
class DataFlowGraph:
    nodes: List[DataFlowNode] = field(default_factory=list)
    edges: List[DataFlowEdge] = field(default_factory=list)
    clusters: List[DataFlowCluster] = field(default_factory=list)


@dataclass
class UserJourneyMap:
    journeys: List[UserJourney] = field(default_factory=list)
    journey_relationships: List[JourneyRelationship] = field(default_factory=list)
    common_patterns: List[JourneyPattern] = field(default_factory=list)
    data_flow_graph: DataFlowGraph = field(default_factory=DataFlowGraph)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# TRACER
# =============================================================================

class JourneyTracer:
    """Derives a UserJourneyMap from project facts and component mappings."""

    entry_point_classifier = ENTRY_POINT
    name_classifier = JOURNEY_NAME
    goal_classifier = JOURNEY_GOAL
    value_classifier = JOURNEY_VALUE
    operation_classifier = DATA_OPERATION
    entity_classifier = DATA_ENTITY
    cluster_classifier = DATA_FLOW_CLUSTER

    def __init__(self, project: ProjectFacts, component_mappings: Dict[str, ComponentMapping]):
        self.project = project
        self.component_mappings = component_mappings
        self.journey_map = UserJourneyMap()

    def transform_data_flows_to_journeys(self) -> UserJourneyMap:
        self.journey_map = UserJourneyMap()

        entry_points = self.identify_entry_points()
        logger.debug("Entry points: %s", [c.name for c in entry_points])

        for entry_point in entry_points:
            journey = self.trace_user_journey(entry_point)
            if journey:
                self.journey_map.journeys.append(journey)

        self.identify_common_patterns()
        self.build_data_flow_graph()
        self.establish_journey_relationships()
        self.calculate_journey_metrics()

        logger.info(
            "Traced %d journeys from %d entry points (%d patterns, %d data-flow edges)",
            len(self.journey_map.journeys), len(entry_points),
            len(self.journey_map.common_patterns), len(self.journey_map.data_flow_graph.edges),
        )
        return self.journey_map

    # -------------------------------------------------------------------------
    # Entry points and per-journey inference
    # -------------------------------------------------------------------------

    def identify_entry_points(self) -> List[ComponentFact]:
        entry_points = []
        for component in self.project.components:
            kind = self.entry_point_classifier.classify(component.name)
            if kind == "route":
                entry_points.append(component)
            elif kind in ("form", "list") and not self.project.has_parent(component):
                entry_points.append(component)
        return entry_points

    def infer_journey_name(self, component: ComponentFact) -> str:
        return self.name_classifier.classify(component.name) or f"{component.name} User Journey"

    def infer_journey_goal(self, component: ComponentFact) -> str:
        mapping = self.component_mappings.get(component.name)
        if mapping:
            return mapping.business_purpose
        return self.goal_classifier.classify(component.name)

    def infer_persona(self, component: ComponentFact) -> str:
        if any("useUser" in h.name or "useAuth" in h.name for h in component.hooks):
            return "authenticated-user"
        if "admin" in component.name.lower():
            return "admin-user"
        return "guest-user"

    def identify_journey_trigger(self, component: ComponentFact) -> JourneyTrigger:
        name = component.name.lower()

        if "dashboard" in name or "home" in name:
            return JourneyTrigger(
                type="user_action",
                description="User navigates to dashboard",
                component=component.name,
                preconditions=[AUTHENTICATED_PRECONDITION, "Application is loaded"],
            )
        if "form" in name:
            return JourneyTrigger(
                type="user_action",
                description="User initiates form interaction",
                component=component.name,
                preconditions=["Form is accessible", "User has necessary permissions"],
            )
        return JourneyTrigger(
            type="user_action",
            description=f"User accesses {component.name}",
            component=component.name,
        )

    def unique_journey_id(self, name: str) -> str:
        """`journey-<lowercased name>`, suffixed -2, -3, ... when names differ only by case."""
        base = f"journey-{name.lower()}"
        taken = {j.id for j in self.journey_map.journeys}
        journey_id = base
        suffix = 2
        while journey_id in taken:
            journey_id = f"{base}-{suffix}"
            suffix += 1
        return journey_id

    def trace_user_journey(self, entry_point: ComponentFact) -> Optional[UserJourney]:
        goal = self.infer_journey_goal(entry_point)
        journey = UserJourney(
            id=self.unique_journey_id(entry_point.name),
            name=self.infer_journey_name(entry_point),
            persona=self.infer_persona(entry_point),
            goal=goal,
            trigger=self.identify_journey_trigger(entry_point),
            business_value=self.value_classifier.classify(goal),
        )

        decision_steps = self.trace_journey_steps(entry_point, journey)
        if not journey.steps:
            logger.debug("Entry point %s produced no steps", entry_point.name)
            return None

        for current, following in zip(journey.steps, journey.steps[1:]):
            current.next_steps.append(following.id)

        journey.data_flow = [self.analyze_step_data_flow(step, journey) for step in journey.steps]
        journey.outcomes = self.identify_journey_outcomes(journey)
        journey.alternative_paths = self.find_alternative_paths(journey, decision_steps)
        return journey

    def trace_journey_steps(self, entry_point: ComponentFact, journey: UserJourney) -> Set[str]:
        """Walk the hierarchy below entry_point, appending steps to the journey.

        Returns the ids of steps that count as decision points.
        """
        visited: Set[str] = set()
        decision_steps: Set[str] = set()
        stack: List[Tuple[ComponentFact, int]] = [(entry_point, 1)]

        while stack:
            component, order = stack.pop()
            if component.name in visited:
                continue
            visited.add(component.name)

            mapping = self.component_mappings.get(component.name)
            if mapping is None:
                continue

            for index, pattern in enumerate(mapping.interaction_patterns):
                step = self.create_step(component, pattern, index, order + index)
                journey.steps.append(step)

                if pattern.type == "user_input":
                    journey.metrics.user_effort += 1
                if pattern.type == "api_call":
                    journey.metrics.integration_points += 1
                if is_decision_point(pattern):
                    journey.metrics.decision_points += 1
                    decision_steps.add(step.id)

            child_order = order + len(mapping.interaction_patterns)
            children = [self.project.get_component(name) for name in component.children]
            # Reversed so the first declared child is popped first.
            for child in reversed(children):
                if child is not None and child.name not in visited:
                    stack.append((child, child_order))

        return decision_steps

    def create_step(self, component: ComponentFact, pattern: InteractionPattern,
                    index: int, order: int) -> JourneyStep:
        return JourneyStep(
            id=f"step-{component.name}-{index}",
            order=order,
            type=STEP_TYPE_BY_PATTERN.get(pattern.type, "process"),
            description=pattern.description,
            component=component.name,
            user_action=", ".join(pattern.triggers),
            system_response=", ".join(pattern.outcomes),
            data_transformation=self.extract_data_operation(component, pattern),
            duration=STEP_DURATION_BY_PATTERN.get(pattern.type, 1),
        )

    def extract_data_operation(self, component: ComponentFact,
                               pattern: InteractionPattern) -> Optional[DataOperation]:
        if pattern.type not in ("api_call", "state_management"):
            return None
        return DataOperation(
            operation=self.operation_classifier.classify(component.name),
            entity=self.entity_classifier.classify(component.name),
        )

    def analyze_step_data_flow(self, step: JourneyStep, journey: UserJourney) -> JourneyDataFlow:
        data_flow = JourneyDataFlow(step_id=step.id)
        mapping = self.component_mappings.get(step.component)

        if mapping is not None:
            data_flow.data_in = [
                DataPoint(name=i.data_type, type=i.data_type, source=i.source, required=True)
                for i in mapping.data_flow.inputs
            ]
            data_flow.processing = [t.business_logic for t in mapping.data_flow.transformations]
            data_flow.data_out = [
                DataPoint(name=o.data_type, type=o.data_type, source="computation")
                for o in mapping.data_flow.outputs
            ]
            data_flow.side_effects = list(mapping.data_flow.side_effects)

        journey.metrics.data_points += len(data_flow.data_in) + len(data_flow.data_out)
        return data_flow

    def identify_journey_outcomes(self, journey: UserJourney) -> List[JourneyOutcome]:
        outcomes = [JourneyOutcome(
            type="success",
            description=f"Successfully complete {journey.goal}",
            business_impact="User achieves intended goal",
            technical_result="All operations completed successfully",
            measurable_metrics=["Completion time", "Success rate", "User satisfaction"],
        )]

        if journey.metrics.integration_points > 0:
            outcomes.append(JourneyOutcome(
                type="failure",
                description="API/Integration failure",
                business_impact="User cannot complete task",
                technical_result="External service unavailable or error",
                measurable_metrics=["Error rate", "Retry attempts", "Fallback usage"],
            ))

        if len(journey.steps) > 3:
            outcomes.append(JourneyOutcome(
                type="partial",
                description="User abandons journey",
                business_impact="Goal partially achieved or abandoned",
                technical_result="Journey interrupted by user action",
                measurable_metrics=["Drop-off rate", "Completion percentage", "Time to abandon"],
            ))

        return outcomes

    def find_alternative_paths(self, journey: UserJourney,
                               decision_steps: Set[str]) -> List[AlternativePath]:
        """One error -> retry detour per decision step, looping back to that step."""
        paths = []
        for step in journey.steps:
            if step.type != "decision" and step.id not in decision_steps:
                continue
            paths.append(AlternativePath(
                id=f"alt-path-error-{step.id}",
                condition="Error or validation failure",
                description="Error handling path",
                from_step=step.id,
                to_step=step.id,
                probability=0.1,
                steps=create_error_handling_steps(step),
            ))
        return paths

    # -------------------------------------------------------------------------
    # Cross-journey analysis
    # -------------------------------------------------------------------------

    def identify_common_patterns(self) -> List[JourneyPattern]:
        occurrences: Dict[str, List[str]] = {}
        for journey in self.journey_map.journeys:
            for sequence in extract_step_sequences(journey.steps):
                journeys = occurrences.setdefault(pattern_key(sequence), [])
                if journey.id not in journeys:
                    journeys.append(journey.id)

        for key, journeys in occurrences.items():
            if len(journeys) > 1:
                self.journey_map.common_patterns.append(create_journey_pattern(key, journeys))
        return self.journey_map.common_patterns

    def build_data_flow_graph(self) -> DataFlowGraph:
        graph = self.journey_map.data_flow_graph
        nodes: Dict[str, DataFlowNode] = {}

        for journey in self.journey_map.journeys:
            for step in journey.steps:
                node = nodes.get(step.component)
                if node is None:
                    node = DataFlowNode(id=step.component, type="component", name=step.component)
                    nodes[step.component] = node
                    graph.nodes.append(node)
                if journey.id not in node.journey_references:
                    node.journey_references.append(journey.id)
                if step.data_transformation and step.data_transformation not in node.data_operations:
                    node.data_operations.append(step.data_transformation)

        # Keyed by (source, target) only: journeys sharing a transition share one edge.
        seen: Set[Tuple[str, str]] = set()
        for journey in self.journey_map.journeys:
            for from_step, to_step in zip(journey.steps, journey.steps[1:]):
                key = (from_step.component, to_step.component)
                if key in seen:
                    continue
                seen.add(key)
                graph.edges.append(DataFlowEdge(
                    id=f"edge-{from_step.id}-{to_step.id}",
                    source=from_step.component,
                    target=to_step.component,
                    data_type="user-data",
                    operation=from_step.type,
                    volume="medium",
                    criticality=assess_criticality(from_step, journey),
                ))

        self.create_data_flow_clusters()
        return graph

    def create_data_flow_clusters(self) -> None:
        groups: Dict[str, List[str]] = {}
        for node in self.journey_map.data_flow_graph.nodes:
            groups.setdefault(self.cluster_classifier.classify(node.name), []).append(node.id)

        for name, node_ids in groups.items():
            if len(node_ids) < 2:
                continue
            self.journey_map.data_flow_graph.clusters.append(DataFlowCluster(
                id="cluster-" + "-".join(name.lower().split()),
                name=name,
                nodes=node_ids,
                purpose=f"Group components related to {name}",
                data_consistency_requirements=infer_consistency_requirements(name),
            ))

    def establish_journey_relationships(self) -> List[JourneyRelationship]:
        relationships = self.journey_map.journey_relationships
        for journey1 in self.journey_map.journeys:
            for journey2 in self.journey_map.journeys:
                if journey1.id == journey2.id:
                    continue
                if can_lead_to(journey1, journey2):
                    relationships.append(JourneyRelationship(
                        source=journey1.id,
                        target=journey2.id,
                        relationship_type="leads_to",
                        condition="After completion",
                    ))
                if requires_journey(journey1, journey2):
                    relationships.append(JourneyRelationship(
                        source=journey1.id,
                        target=journey2.id,
                        relationship_type="requires",
                        condition="Must complete first",
                    ))
        return relationships

    def calculate_journey_metrics(self) -> None:
        for journey in self.journey_map.journeys:
            metrics = journey.metrics
            interactions = sum(1 for s in journey.steps if s.type == "interaction")
            data_operations = sum(1 for s in journey.steps if s.type == "data_operation")

            metrics.estimated_duration = sum(s.duration or 0 for s in journey.steps)
            metrics.complexity = min(
                10, len(journey.steps) / 3 + metrics.decision_points * 2 + len(journey.alternative_paths)
            )
            metrics.user_effort = min(10, interactions * 2)
            metrics.system_load = min(10, metrics.integration_points * 3 + data_operations * 2)


# =============================================================================
# HELPERS
# =============================================================================

def is_decision_point(pattern: InteractionPattern) -> bool:
    return len(pattern.outcomes) > 1 or "decision" in pattern.description


def create_error_handling_steps(step: JourneyStep) -> List[JourneyStep]:
    return [
        JourneyStep(
            id=f"{step.id}-error",
            order=step.order + 0.1,
            type="process",
            description="Display error message",
            component=step.component,
            system_response="Show error notification",
            next_steps=[f"{step.id}-retry"],
            duration=2,
        ),
        JourneyStep(
            id=f"{step.id}-retry",
            order=step.order + 0.2,
            type="interaction",
            description="User can retry action",
            component=step.component,
            user_action="Click retry",
            next_steps=[step.id],
            duration=3,
        ),
    ]


def extract_step_sequences(steps: List[JourneyStep]) -> List[List[JourneyStep]]:
    """Contiguous runs of two and three steps."""
    sequences = []
    for i in range(len(steps) - 1):
        sequences.append(steps[i:i + 2])
        if i < len(steps) - 2:
            sequences.append(steps[i:i + 3])
    return sequences


def pattern_key(sequence: List[JourneyStep]) -> str:
    parts = []
    for step in sequence:
        words = step.description.split(" ")
        parts.append(f"{step.type}-{words[0]}")
    return "->".join(parts)


def create_journey_pattern(key: str, occurrences: List[str]) -> JourneyPattern:
    steps = key.split("->")
    return JourneyPattern(
        id="pattern-" + key.replace("->", "-"),
        name=infer_pattern_name(steps),
        description=f"Common pattern occurring in {len(occurrences)} journeys",
        occurrences=list(occurrences),
        pattern_steps=[
            PatternStep(
                type=step.split("-")[0],
                common_components=[],
                data_pattern=step,
                frequency=len(occurrences),
            )
            for step in steps
        ],
        business_purpose=infer_pattern_purpose(steps),
    )


def _mixes_input_and_data(steps: List[str]) -> bool:
    return any("interaction" in s for s in steps) and any("data_operation" in s for s in steps)


def infer_pattern_name(steps: List[str]) -> str:
    if _mixes_input_and_data(steps):
        return "User Input to Data Operation"
    if all("process" in s for s in steps):
        return "Sequential Processing"
    if any("navigation" in s for s in steps):
        return "Navigation Flow"
    return "Common Interaction Pattern"


def infer_pattern_purpose(steps: List[str]) -> str:
    if _mixes_input_and_data(steps):
        return "Capture user input and persist to database"
    if any("navigation" in s for s in steps):
        return "Guide user through application flow"
    return "Standardize user interaction flow"


def assess_criticality(step: JourneyStep, journey: UserJourney) -> str:
    if step.data_transformation and step.data_transformation.operation == "delete":
        return "critical"
    if step.type == "data_operation" and journey.persona == "authenticated-user":
        return "high"
    if step.type == "interaction":
        return "medium"
    return "low"


def infer_consistency_requirements(cluster_name: str) -> List[str]:
    requirements = ["Data integrity"]
    if "User" in cluster_name:
        requirements.extend(["Authentication consistency", "Session management"])
    if "Task" in cluster_name:
        requirements.extend(["Task state consistency", "Order preservation"])
    return requirements


def can_lead_to(journey1: UserJourney, journey2: UserJourney) -> bool:
    """Name equality of boundary components; collisions can produce spurious links."""
    if not journey1.steps or not journey2.steps:
        return False
    last_step = journey1.steps[-1]
    first_step = journey2.steps[0]
    return last_step.component == first_step.component or first_step.id in last_step.next_steps


def requires_journey(journey1: UserJourney, journey2: UserJourney) -> bool:
    """journey1 needs an authenticated user and journey2 is a login journey."""
    return (
        AUTHENTICATED_PRECONDITION in journey1.trigger.preconditions
        and "login" in journey2.name.lower()
    )
