"""
Business Graph Builder

Unifies the business context, the component graph and the journey map into
one clustered, metric-annotated BusinessGraph, and exports it for
visualization.

build_graph() is one linear pass:
1. node batches (stories, capabilities, features, components, entities,
   journeys, rules, personas)
2. edge batches, all through GraphArena.add_edge, keyed by
   (source, target, type); the first edge for a key wins
3. domain, feature and journey-by-persona clusters (may overlap)
4. connectivity and importance per node
5. graph statistics
6. fixed hierarchical layout (one vertical level per node type)

Export formats: json, cytoscape, d3. graphml, gexf and vis are recognised
but not implemented.

A builder holds a fresh arena per build_graph() call and must not be shared
between concurrent callers.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bizgraph.component_business_mapper import BusinessComponentGraph, BusinessDomain, BusinessFeature, ComponentMapping
from bizgraph.config import BizGraphConfig
from bizgraph.facts import BusinessCapability, BusinessContext, BusinessRule, DataEntity, UserPersona, UserStory
from bizgraph.journey_tracer import UserJourney, UserJourneyMap

logger = logging.getLogger(__name__)


class NodeType(str, Enum):
    """Kinds of node in the business graph."""
    USER_STORY = "user_story"
    BUSINESS_CAPABILITY = "business_capability"
    BUSINESS_FEATURE = "business_feature"
    COMPONENT = "component"
    DATA_ENTITY = "data_entity"
    USER_JOURNEY = "user_journey"
    BUSINESS_RULE = "business_rule"
    USER_PERSONA = "user_persona"
    # Reserved layout levels; no batch produces these yet.
    API_ENDPOINT = "api_endpoint"
    INTEGRATION_POINT = "integration_point"


class EdgeType(str, Enum):
    """Kinds of edge in the business graph."""
    IMPLEMENTS = "implements"
    USES = "uses"
    DEPENDS_ON = "depends_on"
    EXTENDS = "extends"
    TRIGGERS = "triggers"
    VALIDATES = "validates"
    TRANSFORMS = "transforms"
    NAVIGATES_TO = "navigates_to"
    BELONGS_TO = "belongs_to"
    REQUIRES = "requires"


class UnsupportedExportFormat(NotImplementedError):
    """Raised for export formats that are recognised but not implemented."""
    pass


SUPPORTED_FORMATS = ("json", "cytoscape", "d3")
DECLARED_FORMATS = ("graphml", "gexf", "vis")


# =============================================================================
# LOOKUP TABLES
# =============================================================================

# Keyed by every NodeType member; a missing key is a KeyError, never a default.
NODE_ICONS = {
    NodeType.USER_STORY: "story",
    NodeType.BUSINESS_CAPABILITY: "capability",
    NodeType.BUSINESS_FEATURE: "feature",
    NodeType.COMPONENT: "component",
    NodeType.DATA_ENTITY: "database",
    NodeType.USER_JOURNEY: "journey",
    NodeType.BUSINESS_RULE: "rule",
    NodeType.USER_PERSONA: "user",
    NodeType.API_ENDPOINT: "api",
    NodeType.INTEGRATION_POINT: "integration",
}

NODE_LEVELS = {
    NodeType.USER_PERSONA: 0,
    NodeType.USER_JOURNEY: 1,
    NodeType.USER_STORY: 2,
    NodeType.BUSINESS_CAPABILITY: 3,
    NodeType.BUSINESS_FEATURE: 3,
    NodeType.COMPONENT: 4,
    NodeType.DATA_ENTITY: 5,
    NodeType.BUSINESS_RULE: 5,
    NodeType.API_ENDPOINT: 6,
    NodeType.INTEGRATION_POINT: 6,
}

# Fixed colors; story, capability, feature and component nodes are colored
# by attribute instead (see the *_COLORS tables below).
NODE_COLORS = {
    NodeType.USER_STORY: "#3498DB",
    NodeType.BUSINESS_CAPABILITY: "#27AE60",
    NodeType.BUSINESS_FEATURE: "#3498DB",
    NodeType.COMPONENT: "#E67E22",
    NodeType.DATA_ENTITY: "#4A90E2",
    NodeType.USER_JOURNEY: "#9B59B6",
    NodeType.BUSINESS_RULE: "#E74C3C",
    NodeType.USER_PERSONA: "#27AE60",
    NodeType.API_ENDPOINT: "#F39C12",
    NodeType.INTEGRATION_POINT: "#95A5A6",
}

NODE_DESCRIPTIONS = {
    NodeType.USER_STORY: "User requirements and features",
    NodeType.BUSINESS_CAPABILITY: "High-level business functions",
    NodeType.BUSINESS_FEATURE: "Features grouping components by capability",
    NodeType.COMPONENT: "UI/Code components",
    NodeType.DATA_ENTITY: "Data models and entities",
    NodeType.USER_JOURNEY: "User interaction flows",
    NodeType.BUSINESS_RULE: "Validation and business logic",
    NodeType.USER_PERSONA: "Types of application users",
    NodeType.API_ENDPOINT: "Backend endpoints",
    NodeType.INTEGRATION_POINT: "External system integrations",
}

EDGE_DESCRIPTIONS = {
    EdgeType.IMPLEMENTS: "Component implements story/feature",
    EdgeType.USES: "Component uses entity/service",
    EdgeType.DEPENDS_ON: "Feature dependency relationship",
    EdgeType.EXTENDS: "Extension of another element",
    EdgeType.TRIGGERS: "Action triggers another element",
    EdgeType.VALIDATES: "Rule validates entity",
    EdgeType.TRANSFORMS: "Data transformation flow",
    EdgeType.NAVIGATES_TO: "Journey leads to another journey",
    EdgeType.BELONGS_TO: "Story belongs to capability",
    EdgeType.REQUIRES: "Journey must complete first",
}

FEATURE_RELATIONSHIP_EDGES = {
    "depends_on": EdgeType.DEPENDS_ON,
    "extends": EdgeType.EXTENDS,
    "complements": EdgeType.USES,
    "alternative_to": EdgeType.EXTENDS,
}

JOURNEY_RELATIONSHIP_EDGES = {
    "leads_to": EdgeType.NAVIGATES_TO,
    "requires": EdgeType.REQUIRES,
    "alternative_to": EdgeType.EXTENDS,
    "extends": EdgeType.EXTENDS,
}

PRIORITY_COLORS = {"critical": "#E74C3C", "high": "#F39C12", "medium": "#3498DB", "low": "#95A5A6"}
BUSINESS_VALUE_COLORS = {"core": "#27AE60", "supporting": "#3498DB", "generic": "#95A5A6"}
CATEGORY_COLORS = {"core": "#E74C3C", "supporting": "#9B59B6", "utility": "#95A5A6"}
COMPONENT_TYPE_COLORS = {
    "container": "#E67E22",
    "presentational": "#3498DB",
    "functional": "#27AE60",
    "hybrid": "#9B59B6",
}
DOMAIN_COLORS = {
    "User Management": "#3498DB",
    "Task Management": "#27AE60",
    "Analytics": "#9B59B6",
    "Infrastructure": "#95A5A6",
}

STORY_PRIORITY_BONUS = {"critical": 30, "high": 20, "medium": 10}
STORY_PRIORITY_VALUE = {"critical": 100, "high": 75, "medium": 50}
STORY_COMPLEXITY = {"complex": 80, "medium": 50}
CAPABILITY_IMPORTANCE = {"core": 90, "supporting": 60}
CAPABILITY_VALUE = {"core": 100, "supporting": 60}
COMPONENT_TYPE_BONUS = {"container": 20, "hybrid": 30}
RULE_IMPORTANCE = {"validation": 80, "authorization": 90}
CRITICALITY_WEIGHTS = {"critical": 1.0, "high": 0.8, "medium": 0.5}
VOLUME_STROKE = {"high": 3, "medium": 2}


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass
class NodeMetrics:
    importance: float = 0
    complexity: float = 0
    connectivity: int = 0
    business_value: float = 0


@dataclass
class BusinessGraphNode:
    id: str
    type: NodeType
    label: str
    description: str
    data: Dict[str, Any] = field(default_factory=dict)
    position: Optional[Dict[str, float]] = None
    color: str = ""
    icon: str = ""
    metrics: NodeMetrics = field(default_factory=NodeMetrics)
    tags: List[str] = field(default_factory=list)


@dataclass
class BusinessGraphEdge:
    id: str
    source: str
    target: str
    type: EdgeType
    label: str
    weight: float
    direction: str = "unidirectional"
    metadata: Dict[str, Any] = field(default_factory=dict)
    style: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str, EdgeType]:
        return (self.source, self.target, self.type)


@dataclass
class ClusterMetadata:
    business_value: float
    complexity: float
    completeness: float
    risk_level: str  # low | medium | high


@dataclass
class GraphCluster:
    id: str
    name: str
    type: str  # domain | feature | journey | technical
    nodes: List[str]
    color: str = ""
    collapsed: bool = False
    metadata: Optional[ClusterMetadata] = None


@dataclass
class GraphStatistics:
    total_nodes: int = 0
    total_edges: int = 0
    nodes_by_type: Dict[str, int] = field(default_factory=dict)
    edges_by_type: Dict[str, int] = field(default_factory=dict)
    avg_connectivity: float = 0.0
    graph_density: float = 0.0
    clusters: int = 0
    isolated_nodes: int = 0


@dataclass
class GraphMetadata:
    title: str
    description: str
    generated_at: str
    statistics: GraphStatistics = field(default_factory=GraphStatistics)
    view_options: Dict[str, Any] = field(default_factory=dict)
    legend: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class BusinessGraph:
    nodes: List[BusinessGraphNode]
    edges: List[BusinessGraphEdge]
    clusters: List[GraphCluster]
    metadata: GraphMetadata

    def get_node(self, node_id: str) -> Optional[BusinessGraphNode]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def edges_from(self, node_id: str) -> List[BusinessGraphEdge]:
        return [e for e in self.edges if e.source == node_id]


@dataclass
class ExportOptions:
    format: str = "json"
    include_metadata: bool = True
    include_positions: bool = False
    pretty_print: bool = True


class GraphArena:
    """Owns the node and edge lists and enforces node-id and edge-key uniqueness."""

    def __init__(self):
        self.nodes: List[BusinessGraphNode] = []
        self.edges: List[BusinessGraphEdge] = []
        self._node_map: Dict[str, BusinessGraphNode] = {}
        self._edge_map: Dict[Tuple[str, str, EdgeType], BusinessGraphEdge] = {}

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_map

    def get_node(self, node_id: str) -> Optional[BusinessGraphNode]:
        return self._node_map.get(node_id)

    def add_node(self, node: BusinessGraphNode) -> bool:
        if node.id in self._node_map:
            logger.debug("Duplicate node %s dropped", node.id)
            return False
        self.nodes.append(node)
        self._node_map[node.id] = node
        return True

    def add_edge(self, edge: BusinessGraphEdge) -> bool:
        """Add an edge unless its key exists or an endpoint is missing."""
        if not (self.has_node(edge.source) and self.has_node(edge.target)):
            logger.debug("Edge %s skipped, endpoint not in graph", edge.id)
            return False
        if edge.key in self._edge_map:
            return False
        self.edges.append(edge)
        self._edge_map[edge.key] = edge
        return True


def component_node_id(name: str) -> str:
    return f"component-{name}"


def entity_node_id(name: str) -> str:
    return f"entity-{name}"


# =============================================================================
# BUILDER
# =============================================================================

class BusinessGraphBuilder:
    """Builds and exports the unified business graph."""

    def __init__(self, config: Optional[BizGraphConfig] = None):
        self.config = config or BizGraphConfig()
        self.arena = GraphArena()
        self.graph: Optional[BusinessGraph] = None

    def build_graph(self, business_context: BusinessContext,
                    component_graph: BusinessComponentGraph,
                    journey_map: UserJourneyMap) -> BusinessGraph:
        self.arena = GraphArena()
        self.graph = BusinessGraph(
            nodes=self.arena.nodes,
            edges=self.arena.edges,
            clusters=[],
            metadata=GraphMetadata(
                title=self.config.title,
                description=self.config.description,
                generated_at=datetime.now(timezone.utc).isoformat(),
                view_options=default_view_options(),
                legend=generate_legend(),
            ),
        )

        self.add_user_story_nodes(business_context.user_stories)
        self.add_business_capability_nodes(business_context.capabilities)
        self.add_business_feature_nodes(component_graph.features)
        self.add_component_nodes(component_graph.component_mappings)
        self.add_data_entity_nodes(business_context.data_model)
        self.add_user_journey_nodes(journey_map.journeys)
        self.add_business_rule_nodes(business_context.business_rules)
        self.add_persona_nodes(business_context.personas)

        self.create_user_story_edges(business_context)
        self.create_capability_edges(business_context)
        self.create_feature_edges(component_graph)
        self.create_journey_edges(journey_map)
        self.create_data_flow_edges(journey_map)
        self.create_business_rule_edges(business_context)

        self.create_domain_clusters(component_graph.business_domains)
        self.create_feature_clusters(component_graph.features)
        self.create_journey_clusters(journey_map.journeys)

        self.calculate_node_metrics()
        self.calculate_graph_statistics()
        self.apply_layout()

        stats = self.graph.metadata.statistics
        logger.info(
            "Built business graph: %d nodes, %d edges, %d clusters (density %.3f)",
            stats.total_nodes, stats.total_edges, stats.clusters, stats.graph_density,
        )
        return self.graph

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def _add(self, node_id: str, node_type: NodeType, label: str, description: str,
             data: Dict[str, Any], metrics: NodeMetrics, tags: List[str],
             color: Optional[str] = None) -> None:
        self.arena.add_node(BusinessGraphNode(
            id=node_id,
            type=node_type,
            label=label,
            description=description,
            data=data,
            color=color or NODE_COLORS[node_type],
            icon=NODE_ICONS[node_type],
            metrics=metrics,
            tags=[t for t in tags if t],
        ))

    def add_user_story_nodes(self, stories: List[UserStory]) -> None:
        for story in stories:
            self._add(
                story.id, NodeType.USER_STORY, story.title, story.description, story.raw,
                NodeMetrics(
                    importance=calculate_story_importance(story),
                    complexity=STORY_COMPLEXITY.get(story.complexity, 20),
                    business_value=STORY_PRIORITY_VALUE.get(story.priority, 25),
                ),
                [story.story_type, story.priority, story.business_capability],
                color=PRIORITY_COLORS.get(story.priority, "#95A5A6"),
            )

    def add_business_capability_nodes(self, capabilities: List[BusinessCapability]) -> None:
        for capability in capabilities:
            self._add(
                capability.id, NodeType.BUSINESS_CAPABILITY, capability.name, capability.description,
                capability.raw,
                NodeMetrics(
                    importance=CAPABILITY_IMPORTANCE.get(capability.business_value, 30),
                    complexity=len(capability.operations) * 10,
                    business_value=CAPABILITY_VALUE.get(capability.business_value, 30),
                ),
                [capability.business_value],
                color=BUSINESS_VALUE_COLORS.get(capability.business_value, "#95A5A6"),
            )

    def add_business_feature_nodes(self, features: List[BusinessFeature]) -> None:
        for feature in features:
            self._add(
                feature.id, NodeType.BUSINESS_FEATURE, feature.name, feature.description,
                feature.to_dict(),
                NodeMetrics(
                    importance=feature.business_value,
                    complexity=feature.technical_complexity,
                    business_value=feature.business_value,
                ),
                [feature.category],
                color=CATEGORY_COLORS.get(feature.category, "#3498DB"),
            )

    def add_component_nodes(self, mappings: Dict[str, ComponentMapping]) -> None:
        for name, mapping in mappings.items():
            self._add(
                component_node_id(name), NodeType.COMPONENT, name, mapping.business_purpose,
                mapping.to_dict(),
                NodeMetrics(
                    importance=calculate_component_importance(mapping),
                    complexity=len(mapping.interaction_patterns) * 10
                    + len(mapping.data_flow.transformations) * 15,
                    business_value=50,
                ),
                [mapping.component_type],
                color=COMPONENT_TYPE_COLORS.get(mapping.component_type, "#95A5A6"),
            )

    def add_data_entity_nodes(self, entities: List[DataEntity]) -> None:
        for entity in entities:
            self._add(
                entity_node_id(entity.name), NodeType.DATA_ENTITY, entity.name, entity.business_purpose,
                entity.raw,
                NodeMetrics(
                    importance=len(entity.operations) * 15,
                    complexity=len(entity.attributes) * 5 + len(entity.relationships) * 10,
                    business_value=60,
                ),
                ["data"],
            )

    def add_user_journey_nodes(self, journeys: List[UserJourney]) -> None:
        for journey in journeys:
            self._add(
                journey.id, NodeType.USER_JOURNEY, journey.name, journey.goal, asdict(journey),
                NodeMetrics(
                    importance=70,
                    complexity=journey.metrics.complexity * 10,
                    business_value=calculate_journey_business_value(journey),
                ),
                [journey.persona, journey.trigger.type],
            )

    def add_business_rule_nodes(self, rules: List[BusinessRule]) -> None:
        for rule in rules:
            self._add(
                rule.id, NodeType.BUSINESS_RULE, rule.description,
                f"{rule.category} rule affecting {', '.join(rule.affected_entities)}",
                rule.raw,
                NodeMetrics(
                    importance=RULE_IMPORTANCE.get(rule.category, 60),
                    complexity=len(rule.conditions) * 10 + len(rule.actions) * 5,
                    business_value=70,
                ),
                [rule.category],
            )

    def add_persona_nodes(self, personas: List[UserPersona]) -> None:
        for persona in personas:
            self._add(
                persona.id, NodeType.USER_PERSONA, persona.name, persona.description, persona.raw,
                NodeMetrics(importance=80, complexity=20, business_value=90),
                ["persona"],
            )

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def _link(self, source: str, target: str, edge_type: EdgeType, label: str, weight: float,
              edge_id: Optional[str] = None, **extra: Any) -> bool:
        return self.arena.add_edge(BusinessGraphEdge(
            id=edge_id or f"edge-{source}-{target}-{edge_type.value}",
            source=source,
            target=target,
            type=edge_type,
            label=label,
            weight=weight,
            **extra,
        ))

    def create_user_story_edges(self, context: BusinessContext) -> None:
        for story in context.user_stories:
            capability = next((c for c in context.capabilities if story.id in c.user_stories), None)
            if capability:
                self._link(story.id, capability.id, EdgeType.BELONGS_TO, "belongs to", 0.8,
                           metadata={"confidence": story.confidence})

            for name in story.source_components:
                self._link(story.id, component_node_id(name), EdgeType.IMPLEMENTS, "implemented by", 0.7,
                           style={"stroke_color": "#3498DB"})

    def create_capability_edges(self, context: BusinessContext) -> None:
        for capability in context.capabilities:
            for entity_name in capability.data_entities:
                self._link(capability.id, entity_node_id(entity_name), EdgeType.USES, "uses", 0.6,
                           direction="bidirectional",
                           style={"stroke_color": "#9B59B6", "dashed": True})

    def create_feature_edges(self, component_graph: BusinessComponentGraph) -> None:
        for rel in component_graph.feature_relationships:
            edge_type = FEATURE_RELATIONSHIP_EDGES[rel.relationship_type]
            self._link(rel.source, rel.target, edge_type, rel.description, rel.strength,
                       direction="unidirectional" if edge_type is EdgeType.DEPENDS_ON else "bidirectional",
                       metadata={"critical_path": edge_type is EdgeType.DEPENDS_ON})

        for feature in component_graph.features:
            for name in feature.component_names():
                self._link(feature.id, component_node_id(name), EdgeType.USES, "contains", 0.7)

    def create_journey_edges(self, journey_map: UserJourneyMap) -> None:
        for rel in journey_map.journey_relationships:
            self._link(rel.source, rel.target, JOURNEY_RELATIONSHIP_EDGES[rel.relationship_type],
                       rel.relationship_type, 0.6, metadata={"business_rule": rel.condition})

        for journey in journey_map.journeys:
            for name in journey.step_components():
                self._link(journey.id, component_node_id(name), EdgeType.USES, "traverses", 0.5,
                           style={"animated": True})

    def create_data_flow_edges(self, journey_map: UserJourneyMap) -> None:
        for flow in journey_map.data_flow_graph.edges:
            critical = flow.criticality == "critical"
            self._link(
                component_node_id(flow.source), component_node_id(flow.target),
                EdgeType.TRANSFORMS, flow.operation, CRITICALITY_WEIGHTS.get(flow.criticality, 0.3),
                edge_id=flow.id,
                metadata={"data_flow": flow.data_type, "critical_path": critical},
                style={
                    "stroke_width": VOLUME_STROKE.get(flow.volume, 1),
                    "stroke_color": "#E74C3C" if critical
                    else "#F39C12" if flow.criticality == "high" else "#95A5A6",
                    "animated": critical,
                },
            )

    def create_business_rule_edges(self, context: BusinessContext) -> None:
        for rule in context.business_rules:
            for entity_name in rule.affected_entities:
                self._link(rule.id, entity_node_id(entity_name), EdgeType.VALIDATES, "validates", 0.7,
                           style={"stroke_color": "#E74C3C", "dashed": True})
            for name in rule.implementation:
                self._link(rule.id, component_node_id(name), EdgeType.IMPLEMENTS, "enforced by", 0.8)

    # -------------------------------------------------------------------------
    # Clusters
    # -------------------------------------------------------------------------

    def create_domain_clusters(self, domains: List[BusinessDomain]) -> None:
        for domain in domains:
            node_ids = [f for f in domain.features if self.arena.has_node(f)]
            node_ids += [
                component_node_id(c) for c in domain.core_components
                if self.arena.has_node(component_node_id(c))
            ]
            if not node_ids:
                continue
            self.graph.clusters.append(GraphCluster(
                id=domain.id,
                name=domain.name,
                type="domain",
                nodes=node_ids,
                color=DOMAIN_COLORS.get(domain.name, "#F39C12"),
                metadata=ClusterMetadata(
                    business_value=80,
                    complexity=60,
                    completeness=len(domain.features) / 10 * 100,
                    risk_level="medium",
                ),
            ))

    def create_feature_clusters(self, features: List[BusinessFeature]) -> None:
        threshold = self.config.feature_collapse_threshold
        for feature in features:
            node_ids = [feature.id]
            node_ids += [s for s in feature.user_stories if self.arena.has_node(s)]
            node_ids += [
                component_node_id(c) for c in feature.component_names()
                if self.arena.has_node(component_node_id(c))
            ]
            if len(node_ids) <= 2:
                continue
            self.graph.clusters.append(GraphCluster(
                id=f"cluster-{feature.id}",
                name=f"{feature.name} Feature",
                type="feature",
                nodes=node_ids,
                color=CATEGORY_COLORS.get(feature.category, "#3498DB"),
                collapsed=len(node_ids) > threshold,
                metadata=ClusterMetadata(
                    business_value=feature.business_value,
                    complexity=feature.technical_complexity,
                    completeness=70,
                    risk_level=risk_level(feature.technical_complexity),
                ),
            ))

    def create_journey_clusters(self, journeys: List[UserJourney]) -> None:
        by_persona: Dict[str, List[UserJourney]] = {}
        for journey in journeys:
            by_persona.setdefault(journey.persona, []).append(journey)

        for persona, persona_journeys in by_persona.items():
            if len(persona_journeys) < 2:
                continue
            average = sum(j.metrics.complexity for j in persona_journeys) / len(persona_journeys)
            self.graph.clusters.append(GraphCluster(
                id=f"cluster-journey-{persona}",
                name=f"{persona} Journeys",
                type="journey",
                nodes=[j.id for j in persona_journeys],
                color=NODE_COLORS[NodeType.USER_JOURNEY],
                metadata=ClusterMetadata(
                    business_value=70,
                    complexity=average * 10,
                    completeness=80,
                    risk_level="low",
                ),
            ))

    # -------------------------------------------------------------------------
    # Metrics, statistics, layout
    # -------------------------------------------------------------------------

    def calculate_node_metrics(self) -> None:
        degree: Dict[str, int] = {}
        for edge in self.arena.edges:
            degree[edge.source] = degree.get(edge.source, 0) + 1
            degree[edge.target] = degree.get(edge.target, 0) + 1

        for node in self.arena.nodes:
            node.metrics.connectivity = degree.get(node.id, 0)
            node.metrics.importance = min(100, node.metrics.importance + node.metrics.connectivity * 2)

    def calculate_graph_statistics(self) -> GraphStatistics:
        stats = self.graph.metadata.statistics
        nodes = self.arena.nodes
        edges = self.arena.edges

        stats.total_nodes = len(nodes)
        stats.total_edges = len(edges)
        stats.nodes_by_type = {}
        for node in nodes:
            stats.nodes_by_type[node.type.value] = stats.nodes_by_type.get(node.type.value, 0) + 1
        stats.edges_by_type = {}
        for edge in edges:
            stats.edges_by_type[edge.type.value] = stats.edges_by_type.get(edge.type.value, 0) + 1

        if nodes:
            stats.avg_connectivity = sum(n.metrics.connectivity for n in nodes) / len(nodes)
        # Undirected-style approximation applied to a directed graph.
        max_edges = len(nodes) * (len(nodes) - 1) / 2
        stats.graph_density = len(edges) / max_edges if max_edges else 0.0
        stats.clusters = len(self.graph.clusters)
        stats.isolated_nodes = sum(1 for n in nodes if n.metrics.connectivity == 0)
        return stats

    def apply_layout(self) -> None:
        """Pin each node type to its level; spread a level's nodes evenly across the width."""
        layout = self.config.layout
        by_level: Dict[int, List[BusinessGraphNode]] = {}
        for node in self.arena.nodes:
            by_level.setdefault(NODE_LEVELS[node.type], []).append(node)

        for level, nodes in sorted(by_level.items()):
            y = layout.top_margin + level * layout.level_gap
            spacing = layout.total_width / max(len(nodes), 1)
            for i, node in enumerate(nodes):
                node.position = {"x": layout.left_margin + i * spacing, "y": y}

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_graph(self, options: ExportOptions) -> str:
        """Serialize the last built graph; see export_graph_data() for the shapes."""
        data = self.export_graph_data(options)
        if options.pretty_print:
            return json.dumps(data, indent=2)
        return json.dumps(data)

    def export_graph_data(self, options: ExportOptions) -> Dict[str, Any]:
        """Build the export dict for json, cytoscape or d3.

        graphml, gexf and vis are recognised but raise UnsupportedExportFormat
        rather than silently falling back to json. Unknown formats raise ValueError.
        """
        if self.graph is None:
            raise RuntimeError("build_graph() must be called before exporting")

        if options.format == "json":
            return self.export_as_json(options)
        if options.format == "cytoscape":
            return self.export_as_cytoscape(options)
        if options.format == "d3":
            return self.export_as_d3(options)
        if options.format in DECLARED_FORMATS:
            raise UnsupportedExportFormat(f"Export format '{options.format}' is not implemented")
        raise ValueError(
            f"Unknown export format '{options.format}'. "
            f"Supported: {', '.join(SUPPORTED_FORMATS)}"
        )

    def export_as_json(self, options: ExportOptions) -> Dict[str, Any]:
        nodes = []
        for node in self.graph.nodes:
            entry = {
                "id": node.id,
                "type": node.type.value,
                "label": node.label,
                "description": node.description,
                "color": node.color,
                "icon": node.icon,
                "tags": list(node.tags),
            }
            if options.include_metadata:
                entry["data"] = node.data
                entry["metrics"] = asdict(node.metrics)
            if options.include_positions and node.position is not None:
                entry["position"] = dict(node.position)
            nodes.append(entry)

        result: Dict[str, Any] = {
            "nodes": nodes,
            "edges": [edge_to_dict(e) for e in self.graph.edges],
        }
        if options.include_metadata:
            result["clusters"] = [asdict(c) for c in self.graph.clusters]
            result["metadata"] = asdict(self.graph.metadata)
        return result

    def export_as_cytoscape(self, options: ExportOptions) -> Dict[str, Any]:
        elements = []
        for node in self.graph.nodes:
            data = {"id": node.id, "label": node.label, "type": node.type.value}
            if options.include_metadata:
                data["metrics"] = asdict(node.metrics)
            element: Dict[str, Any] = {"data": data, "classes": node.type.value}
            if options.include_positions and node.position is not None:
                element["position"] = dict(node.position)
            elements.append(element)

        for edge in self.graph.edges:
            elements.append({
                "data": {
                    "id": edge.id,
                    "source": edge.source,
                    "target": edge.target,
                    "label": edge.label,
                    "type": edge.type.value,
                    "weight": edge.weight,
                },
                "classes": edge.type.value,
            })
        return {"elements": elements}

    def export_as_d3(self, options: ExportOptions) -> Dict[str, Any]:
        nodes = []
        for node in self.graph.nodes:
            entry = {
                "id": node.id,
                "label": node.label,
                "group": node.type.value,
                "value": node.metrics.importance or 50,
            }
            if options.include_positions and node.position is not None:
                entry["x"] = node.position["x"]
                entry["y"] = node.position["y"]
            nodes.append(entry)

        links = [
            {"source": e.source, "target": e.target, "value": e.weight, "type": e.type.value}
            for e in self.graph.edges
        ]
        return {"nodes": nodes, "links": links}


# =============================================================================
# HELPERS
# =============================================================================

def edge_to_dict(edge: BusinessGraphEdge) -> Dict[str, Any]:
    data = asdict(edge)
    data["type"] = edge.type.value
    return data


def calculate_story_importance(story: UserStory) -> float:
    importance = 50 + STORY_PRIORITY_BONUS.get(story.priority, 0) + story.confidence * 20
    return min(100, importance)


def calculate_component_importance(mapping: ComponentMapping) -> float:
    importance = 30 + COMPONENT_TYPE_BONUS.get(mapping.component_type, 0)
    importance += len(mapping.interaction_patterns) * 5
    importance += len(mapping.data_flow.transformations) * 10
    return min(100, importance)


def calculate_journey_business_value(journey: UserJourney) -> float:
    value = 50
    if journey.persona == "authenticated-user":
        value += 20
    if journey.metrics.complexity > 5:
        value += 10
    if journey.metrics.integration_points > 2:
        value += 15
    return min(100, value)


def risk_level(complexity: float) -> str:
    if complexity > 70:
        return "high"
    if complexity > 40:
        return "medium"
    return "low"


def default_view_options() -> Dict[str, Any]:
    return {
        "layout": "hierarchical",
        "show_labels": True,
        "show_metrics": False,
        "highlight_critical_paths": True,
        "collapse_threshold": 10,
    }


def generate_legend() -> List[Dict[str, str]]:
    legend = [
        {
            "type": "node",
            "category": node_type.value.replace("_", " ").title(),
            "color": NODE_COLORS[node_type],
            "icon": NODE_ICONS[node_type],
            "description": NODE_DESCRIPTIONS[node_type],
        }
        for node_type in NodeType
    ]
    legend += [
        {
            "type": "edge",
            "category": edge_type.value.replace("_", " ").title(),
            "description": EDGE_DESCRIPTIONS[edge_type],
        }
        for edge_type in EdgeType
    ]
    return legend
