"""
Component Business Mapper

Maps structural component facts to business meaning:
- classifies each component (container / presentational / functional / hybrid)
- infers responsibility and business purpose from naming and bindings
- derives interaction patterns and data-flow patterns
- groups components into business features (one per capability, plus an
  implicit "UI Infrastructure" feature for everything unclaimed)
- relates features to each other and clusters them into business domains

All inference is heuristic and low-confidence. Each component is owned by
exactly one feature: when several capabilities list the same component the
first capability claims it, later ones only record it in
``shared_components``.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Set

from bizgraph.classifiers import Classifier, FEATURE_DOMAIN, RESPONSIBILITY
from bizgraph.facts import BusinessCapability, ComponentFact, DataEntity, ProjectFacts, UserStory

logger = logging.getLogger(__name__)

STATE_HOOKS = ("useState", "useReducer")

IMPLICIT_FEATURE_ID = "feature-ui-infrastructure"
AUTH_FEATURE_ID = "feature-user-auth"

TIER_BASE_VALUE = {"core": 40, "supporting": 20}
STORY_PRIORITY_WEIGHT = {"critical": 10, "high": 7, "medium": 4}
TYPE_COMPLEXITY_WEIGHT = {"hybrid": 15, "container": 10, "functional": 5, "presentational": 3}
TYPE_AVERAGE_COMPLEXITY = {"hybrid": 8, "container": 6, "functional": 3, "presentational": 1}
TYPE_EXTRA_LINES = {"hybrid": 150, "container": 100, "functional": 50, "presentational": 0}

KNOWN_BUSINESS_PURPOSES = {
    "TodoList": "Enable task management and organization",
    "UserProfile": "Manage user identity and preferences",
    "Dashboard": "Provide business insights and overview",
    "CreateTodoForm": "Capture new task requirements",
    "Header": "Facilitate application navigation",
    "TodoItem": "Display and manage individual tasks",
    "UserAvatar": "Represent user identity visually",
    "RecentActivity": "Track and display user actions",
    "TodoSummary": "Provide task completion metrics",
}

PROP_PURPOSES = {
    "data": "Provide data for display",
    "items": "Supply collection for rendering",
    "value": "Current value or state",
    "onChange": "Handle value changes",
    "onSubmit": "Handle form submission",
    "onClick": "Handle user clicks",
    "loading": "Indicate loading state",
    "error": "Display error state",
    "disabled": "Control interaction availability",
}


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass(frozen=True)
class InteractionPattern:
    type: str  # user_input | display | navigation | state_management | api_call
    description: str
    triggers: List[str] = field(default_factory=list)
    outcomes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DataInput:
    source: str  # props | state | context | api | route
    data_type: str
    purpose: str


@dataclass(frozen=True)
class DataTransformation:
    operation: str
    business_logic: str
    validation: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DataOutput:
    destination: str  # render | state_update | api_call | navigation | event
    data_type: str
    effect: str


@dataclass(frozen=True)
class DataFlowPattern:
    inputs: List[DataInput] = field(default_factory=list)
    transformations: List[DataTransformation] = field(default_factory=list)
    outputs: List[DataOutput] = field(default_factory=list)
    side_effects: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ComponentMapping:
    component_name: str
    component_type: str
    responsibility: str
    business_purpose: str
    interaction_patterns: List[InteractionPattern] = field(default_factory=list)
    data_flow: DataFlowPattern = field(default_factory=DataFlowPattern)

    def has_pattern(self, pattern_type: str) -> bool:
        return any(p.type == pattern_type for p in self.interaction_patterns)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FeatureDependency:
    feature_id: str
    dependency_type: str  # requires | extends | optional
    reason: str


@dataclass
class FeatureMetrics:
    code_lines: int = 0
    component_count: int = 0
    user_interaction_points: int = 0
    api_endpoints: int = 0
    average_complexity: float = 0.0


@dataclass
class BusinessFeature:
    id: str
    name: str
    description: str
    category: str  # core | supporting | utility
    components: List[ComponentMapping] = field(default_factory=list)
    user_stories: List[str] = field(default_factory=list)
    data_entities: List[str] = field(default_factory=list)
    business_value: int = 0
    technical_complexity: int = 0
    dependencies: List[FeatureDependency] = field(default_factory=list)
    metrics: FeatureMetrics = field(default_factory=FeatureMetrics)
    shared_components: List[str] = field(default_factory=list)

    def component_names(self) -> List[str]:
        return [c.component_name for c in self.components]

    def referenced_components(self) -> List[str]:
        """Owned components followed by references claimed by another feature."""
        return self.component_names() + self.shared_components

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FeatureRelationship:
    source: str
    target: str
    relationship_type: str  # depends_on | extends | complements | alternative_to
    strength: float
    description: str


@dataclass
class DomainTerm:
    term: str
    technical_mapping: str
    component_references: List[str]
    description: str


@dataclass
class BusinessDomain:
    id: str
    name: str
    description: str
    features: List[str] = field(default_factory=list)
    core_components: List[str] = field(default_factory=list)
    boundary_components: List[str] = field(default_factory=list)
    domain_language: List[DomainTerm] = field(default_factory=list)


@dataclass
class BusinessComponentGraph:
    features: List[BusinessFeature] = field(default_factory=list)
    component_mappings: Dict[str, ComponentMapping] = field(default_factory=dict)
    feature_relationships: List[FeatureRelationship] = field(default_factory=list)
    business_domains: List[BusinessDomain] = field(default_factory=list)

    def get_feature(self, feature_id: str) -> Optional[BusinessFeature]:
        return next((f for f in self.features if f.id == feature_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "features": [f.to_dict() for f in self.features],
            "mappings": {name: m.to_dict() for name, m in self.component_mappings.items()},
            "relationships": [asdict(r) for r in self.feature_relationships],
            "domains": [asdict(d) for d in self.business_domains],
        }


# =============================================================================
# MAPPER
# =============================================================================

class ComponentBusinessMapper:
    """Builds a BusinessComponentGraph from project facts and capabilities."""

    def __init__(self, project: ProjectFacts,
                 responsibility_classifier: Classifier = RESPONSIBILITY,
                 domain_classifier: Classifier = FEATURE_DOMAIN):
        self.project = project
        self.responsibility_classifier = responsibility_classifier
        self.domain_classifier = domain_classifier
        self.graph = BusinessComponentGraph()

    def map_components_to_business_features(
        self,
        user_stories: List[UserStory],
        capabilities: List[BusinessCapability],
        data_entities: Optional[List[DataEntity]] = None,
    ) -> BusinessComponentGraph:
        """Run the full mapping pass and return the component graph."""
        self.graph = BusinessComponentGraph()

        self.map_components()
        self.identify_business_features(user_stories, capabilities)
        self.create_feature_relationships()
        self.identify_business_domains()
        self.calculate_feature_metrics()

        logger.info(
            "Mapped %d components into %d features, %d relationships, %d domains",
            len(self.graph.component_mappings), len(self.graph.features),
            len(self.graph.feature_relationships), len(self.graph.business_domains),
        )
        return self.graph

    # -------------------------------------------------------------------------
    # Component mappings
    # -------------------------------------------------------------------------

    def map_components(self) -> Dict[str, ComponentMapping]:
        for component in self.project.components:
            self.graph.component_mappings[component.name] = self.create_component_mapping(component)
        return self.graph.component_mappings

    def create_component_mapping(self, component: ComponentFact) -> ComponentMapping:
        return ComponentMapping(
            component_name=component.name,
            component_type=self.classify_component_type(component),
            responsibility=self.infer_component_responsibility(component),
            business_purpose=self.infer_business_purpose(component),
            interaction_patterns=self.extract_interaction_patterns(component),
            data_flow=self.analyze_data_flow(component),
        )

    def classify_component_type(self, component: ComponentFact) -> str:
        """Decision table, checked in priority order hybrid > container > presentational > functional."""
        has_state = component.has_hook(*STATE_HOOKS)
        has_children = len(component.children) > 0
        has_complex_logic = len(component.hooks) > 3

        if has_state and has_children and has_complex_logic:
            return "hybrid"
        if has_state or has_complex_logic:
            return "container"
        if has_children:
            return "presentational"
        return "functional"

    def infer_component_responsibility(self, component: ComponentFact) -> str:
        responsibility = self.responsibility_classifier.classify(component.name)
        if responsibility:
            return responsibility

        hook_names = [h.name.lower() for h in component.hooks]
        if any("fetch" in name or "api" in name for name in hook_names):
            return "Manage data fetching and API interactions"
        if component.has_hook("useContext"):
            return "Consume and utilize shared application state"

        return f"Manage {component.name} functionality"

    def infer_business_purpose(self, component: ComponentFact) -> str:
        if component.name in KNOWN_BUSINESS_PURPOSES:
            return KNOWN_BUSINESS_PURPOSES[component.name]
        return f"Support {self.infer_component_responsibility(component).lower()}"

    def extract_interaction_patterns(self, component: ComponentFact) -> List[InteractionPattern]:
        patterns = []
        imports = [source.lower() for source in self.project.file_imports(component)]

        for prop_name in component.prop_names():
            if prop_name.startswith("on"):
                patterns.append(InteractionPattern(
                    type="user_input",
                    description=f"Handle {humanize_event_name(prop_name)}",
                    triggers=[prop_name],
                    outcomes=infer_event_outcomes(prop_name),
                ))

        if any(name in ("data", "items") for name in component.prop_names()):
            patterns.append(InteractionPattern(
                type="display",
                description="Display data to user",
                triggers=["Data prop change", "Component mount"],
                outcomes=["Render updated view", "Show information to user"],
            ))

        if any("router" in source for source in imports):
            patterns.append(InteractionPattern(
                type="navigation",
                description="Handle navigation between views",
                triggers=["User click", "Programmatic navigation"],
                outcomes=["Route change", "View update"],
            ))

        if component.has_hook(*STATE_HOOKS):
            patterns.append(InteractionPattern(
                type="state_management",
                description="Manage component state",
                triggers=["User interaction", "Data updates"],
                outcomes=["State change", "Re-render", "Side effects"],
            ))

        if component.has_hook("useEffect") and any("api" in s or "service" in s for s in imports):
            patterns.append(InteractionPattern(
                type="api_call",
                description="Communicate with backend services",
                triggers=["Component mount", "User action", "State change"],
                outcomes=["Data fetch", "Data mutation", "Error handling"],
            ))

        return patterns

    def analyze_data_flow(self, component: ComponentFact) -> DataFlowPattern:
        inputs = [
            DataInput(source="props", data_type=prop.type or "unknown", purpose=infer_prop_purpose(prop.name))
            for prop in component.props
        ]
        transformations = []
        outputs = []
        side_effects = []

        if component.has_hook("useState"):
            inputs.append(DataInput("state", "component state", "Maintain component-specific data"))
        if component.has_hook("useContext"):
            inputs.append(DataInput("context", "shared state", "Access application-wide data"))

        if component.has_hook("useMemo"):
            transformations.append(DataTransformation(
                operation="Memoization",
                business_logic="Optimize expensive computations",
            ))
        if "form" in component.name.lower():
            transformations.append(DataTransformation(
                operation="Form validation",
                business_logic="Ensure data integrity",
                validation=["Required fields", "Format validation", "Business rules"],
            ))

        if any(name.startswith("on") for name in component.prop_names()):
            outputs.append(DataOutput("event", "user action", "Trigger parent component handler"))
        if component.has_hook("useState"):
            outputs.append(DataOutput("state_update", "state mutation", "Update component state and trigger re-render"))

        if component.has_hook("useEffect"):
            side_effects.append("Perform side effects on state/prop changes")

        return DataFlowPattern(inputs=inputs, transformations=transformations,
                               outputs=outputs, side_effects=side_effects)

    # -------------------------------------------------------------------------
    # Features
    # -------------------------------------------------------------------------

    def identify_business_features(self, user_stories: List[UserStory],
                                   capabilities: List[BusinessCapability]) -> List[BusinessFeature]:
        claimed: Set[str] = set()
        for capability in capabilities:
            feature = self.create_business_feature(capability, user_stories, claimed)
            self.graph.features.append(feature)

        implicit = self.identify_implicit_feature(claimed)
        if implicit:
            self.graph.features.append(implicit)
        return self.graph.features

    def create_business_feature(self, capability: BusinessCapability,
                                user_stories: List[UserStory],
                                claimed: Set[str]) -> BusinessFeature:
        related_stories = [s for s in user_stories if s.id in capability.user_stories]

        owned: List[ComponentMapping] = []
        shared: List[str] = []
        for name in capability.components:
            mapping = self.graph.component_mappings.get(name)
            if mapping is None:
                continue
            if name in claimed:
                logger.debug("Component '%s' already claimed, %s records it as shared", name, capability.id)
                shared.append(name)
                continue
            claimed.add(name)
            owned.append(mapping)

        return BusinessFeature(
            id=f"feature-{capability.id}",
            name=capability.name,
            description=capability.description,
            category=categorize_feature(capability),
            components=owned,
            user_stories=list(capability.user_stories),
            data_entities=list(capability.data_entities),
            business_value=calculate_business_value(capability, related_stories),
            technical_complexity=calculate_technical_complexity(owned),
            dependencies=self.identify_feature_dependencies(capability),
            metrics=FeatureMetrics(api_endpoints=len(capability.operations)),
            shared_components=shared,
        )

    def identify_feature_dependencies(self, capability: BusinessCapability) -> List[FeatureDependency]:
        dependencies = [
            FeatureDependency(f"feature-{dep}", "requires", "Declared capability dependency")
            for dep in capability.raw.get("dependencies") or []
        ]
        if "User" not in capability.name and "Auth" not in capability.name:
            dependencies.append(FeatureDependency(AUTH_FEATURE_ID, "requires", "Requires user authentication"))
        return dependencies

    def identify_implicit_feature(self, claimed: Set[str]) -> Optional[BusinessFeature]:
        unassigned = [m for name, m in self.graph.component_mappings.items() if name not in claimed]
        if not unassigned:
            return None

        logger.debug("%d unclaimed components go to UI Infrastructure", len(unassigned))
        return BusinessFeature(
            id=IMPLICIT_FEATURE_ID,
            name="UI Infrastructure",
            description="Common UI components and utilities",
            category="utility",
            components=unassigned,
            business_value=20,
            technical_complexity=30,
        )

    # -------------------------------------------------------------------------
    # Relationships and domains
    # -------------------------------------------------------------------------

    def create_feature_relationships(self) -> List[FeatureRelationship]:
        # Direction follows iteration order; both (a, b) and (b, a) are evaluated.
        for feature1 in self.graph.features:
            for feature2 in self.graph.features:
                if feature1.id == feature2.id:
                    continue
                relationship = analyze_feature_relationship(feature1, feature2)
                if relationship:
                    self.graph.feature_relationships.append(relationship)
        return self.graph.feature_relationships

    def identify_business_domains(self) -> List[BusinessDomain]:
        clusters: Dict[str, List[BusinessFeature]] = {}
        for feature in self.graph.features:
            domain_name = self.domain_classifier.classify(feature.name) or "General"
            clusters.setdefault(domain_name, []).append(feature)

        for domain_name, features in clusters.items():
            self.graph.business_domains.append(BusinessDomain(
                id="domain-" + re.sub(r"\s+", "-", domain_name.lower()),
                name=domain_name,
                description=f"Business domain for {domain_name.lower()} capabilities",
                features=[f.id for f in features],
                core_components=identify_core_components(features),
                boundary_components=identify_boundary_components(features),
                domain_language=extract_domain_language(features),
            ))
        return self.graph.business_domains

    def calculate_feature_metrics(self) -> None:
        for feature in self.graph.features:
            feature.metrics.code_lines = estimate_code_lines(feature.components)
            feature.metrics.component_count = len(feature.components)
            feature.metrics.user_interaction_points = count_interaction_points(feature.components)
            feature.metrics.average_complexity = calculate_average_complexity(feature.components)


# =============================================================================
# SCORING AND HELPERS
# =============================================================================

def categorize_feature(capability: BusinessCapability) -> str:
    if capability.business_value in ("core", "supporting"):
        return capability.business_value
    return "utility"


def calculate_business_value(capability: BusinessCapability, stories: List[UserStory]) -> int:
    value = TIER_BASE_VALUE.get(capability.business_value, 10)
    value += sum(STORY_PRIORITY_WEIGHT.get(story.priority, 1) for story in stories)
    return min(100, value)


def calculate_technical_complexity(components: List[ComponentMapping]) -> int:
    complexity = 0
    for comp in components:
        complexity += TYPE_COMPLEXITY_WEIGHT.get(comp.component_type, 3)
        complexity += len(comp.interaction_patterns) * 3
        complexity += len(comp.data_flow.inputs) * 2
        complexity += len(comp.data_flow.transformations) * 5
    return min(100, complexity)


def count_interaction_points(components: List[ComponentMapping]) -> int:
    return sum(
        1 for comp in components for p in comp.interaction_patterns if p.type == "user_input"
    )


def calculate_average_complexity(components: List[ComponentMapping]) -> float:
    if not components:
        return 0.0
    total = sum(TYPE_AVERAGE_COMPLEXITY.get(c.component_type, 1) for c in components)
    return total / len(components)


def estimate_code_lines(components: List[ComponentMapping]) -> int:
    total = 0
    for comp in components:
        lines = 50 + TYPE_EXTRA_LINES.get(comp.component_type, 0)
        lines += len(comp.interaction_patterns) * 20
        lines += len(comp.data_flow.transformations) * 30
        total += lines
    return total


def analyze_feature_relationship(feature1: BusinessFeature,
                                 feature2: BusinessFeature) -> Optional[FeatureRelationship]:
    """First matching rule wins: declared dependency > shared components > shared data."""
    if any(d.feature_id == feature2.id for d in feature1.dependencies):
        return FeatureRelationship(
            source=feature1.id,
            target=feature2.id,
            relationship_type="depends_on",
            strength=0.8,
            description=f"{feature1.name} depends on {feature2.name}",
        )

    refs1 = feature1.referenced_components()
    refs2 = feature2.referenced_components()
    shared_components = [name for name in refs1 if name in refs2]
    if shared_components:
        return FeatureRelationship(
            source=feature1.id,
            target=feature2.id,
            relationship_type="complements",
            strength=len(shared_components) / max(len(refs1), len(refs2)),
            description=f"Features share {len(shared_components)} component(s)",
        )

    shared_entities = [e for e in feature1.data_entities if e in feature2.data_entities]
    if shared_entities:
        return FeatureRelationship(
            source=feature1.id,
            target=feature2.id,
            relationship_type="complements",
            strength=0.5,
            description=f"Features operate on shared data: {', '.join(shared_entities)}",
        )

    return None


def identify_core_components(features: List[BusinessFeature]) -> List[str]:
    """Components referenced by more than one feature of the domain."""
    counts: Dict[str, int] = {}
    for feature in features:
        for name in feature.referenced_components():
            counts[name] = counts.get(name, 0) + 1
    return [name for name, count in counts.items() if count > 1]


def identify_boundary_components(features: List[BusinessFeature]) -> List[str]:
    boundary: List[str] = []
    for feature in features:
        for comp in feature.components:
            if comp.has_pattern("api_call") and comp.component_name not in boundary:
                boundary.append(comp.component_name)
    return boundary


def extract_domain_language(features: List[BusinessFeature]) -> List[DomainTerm]:
    terms = []
    for feature in features:
        terms.append(DomainTerm(
            term=feature.name,
            technical_mapping=feature.id,
            component_references=feature.component_names(),
            description=feature.description,
        ))
        for entity in feature.data_entities:
            terms.append(DomainTerm(
                term=entity,
                technical_mapping=f"entity-{entity.lower()}",
                component_references=[
                    c.component_name for c in feature.components if entity in c.business_purpose
                ],
                description=f"Data entity representing {entity.lower()}",
            ))
    return terms


def humanize_event_name(event_name: str) -> str:
    """'onToggleComplete' -> 'toggle complete'"""
    name = re.sub(r"^on", "", event_name)
    return re.sub(r"([A-Z])", r" \1", name).strip().lower()


def infer_event_outcomes(event_name: str) -> List[str]:
    if "Submit" in event_name:
        return ["Form submission", "Data validation", "API call"]
    if "Click" in event_name:
        return ["State update", "Navigation", "Action trigger"]
    if "Change" in event_name:
        return ["Input update", "Validation", "State change"]
    return []


def infer_prop_purpose(prop_name: str) -> str:
    return PROP_PURPOSES.get(prop_name, f"Support {prop_name} functionality")
