"""
Generate a human-readable markdown report from the pipeline results.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import tabulate

from bizgraph.business_graph_builder import BusinessGraph
from bizgraph.component_business_mapper import BusinessComponentGraph
from bizgraph.facts import BusinessContext
from bizgraph.journey_tracer import UserJourneyMap

OUTPUT_FILE_DESCRIPTIONS = {
    "business-context.json": "Business context as consumed by the pipeline",
    "component-mapping.json": "Component to business feature mappings",
    "user-journeys.json": "User journey definitions and data flows",
    "business-graph.json": "Full graph representation",
    "business-graph-cytoscape.json": "Graph formatted for Cytoscape visualization",
    "business-graph-d3.json": "Graph formatted for D3.js visualization",
    "business-graph-node-link.json": "NetworkX node-link representation",
    "graph-analysis.json": "Centrality, communities, cycles and coverage gaps",
    "business-report.md": "This report",
}


def _table(rows: List[List[Any]], headers: List[str]) -> str:
    if not rows:
        return "_None._\n"
    return tabulate.tabulate(rows, headers=headers, tablefmt="github") + "\n"


def generate_report(context: BusinessContext,
                    component_graph: BusinessComponentGraph,
                    journey_map: UserJourneyMap,
                    graph: BusinessGraph,
                    analysis: Optional[Dict[str, Any]] = None,
                    source: str = "project facts",
                    files: Optional[List[str]] = None) -> str:
    """Generate the markdown report."""
    stats = graph.metadata.statistics

    doc = f"""# Business Context Report

Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
Source: {source}

## Executive Summary

{len(component_graph.component_mappings)} components mapped to {len(component_graph.features)} business features
in {len(component_graph.business_domains)} domains; {len(journey_map.journeys)} user journeys traced.

## User Stories ({len(context.user_stories)} total)

"""
    for story in context.user_stories[:5]:
        doc += f"- **{story.title}** ({story.priority} priority, {story.confidence * 100:.0f}% confidence)\n"
        if story.description:
            doc += f"  - {story.description}\n"
        doc += f"  - Acceptance Criteria: {len(story.acceptance_criteria)} items\n"
    if len(context.user_stories) > 5:
        doc += f"- ... and {len(context.user_stories) - 5} more\n"

    doc += f"\n## Business Capabilities ({len(context.capabilities)} total)\n\n"
    doc += _table(
        [[c.name, c.business_value, len(c.operations), len(c.components)] for c in context.capabilities],
        ["Capability", "Value", "Operations", "Components"],
    )

    doc += f"\n## Business Features ({len(component_graph.features)} total)\n\n"
    doc += _table(
        [
            [f.name, f.category, f.business_value, f.technical_complexity,
             len(f.components), len(f.user_stories), f.metrics.code_lines]
            for f in component_graph.features
        ],
        ["Feature", "Category", "Value", "Complexity", "Components", "Stories", "Est. Lines"],
    )

    shared = [(f.name, name) for f in component_graph.features for name in f.shared_components]
    if shared:
        doc += "\nComponents referenced by more than one capability (owned by the first):\n\n"
        for feature_name, component_name in shared:
            doc += f"- `{component_name}` also referenced by {feature_name}\n"

    doc += f"\n## User Journeys ({len(journey_map.journeys)} total)\n\n"
    doc += _table(
        [
            [j.name, j.persona, len(j.steps), j.metrics.estimated_duration,
             f"{j.metrics.complexity:.1f}/10", f"{j.metrics.user_effort}/10"]
            for j in journey_map.journeys
        ],
        ["Journey", "Persona", "Steps", "Duration (s)", "Complexity", "User Effort"],
    )
    for journey in journey_map.journeys:
        doc += f"\n### {journey.name}\n\n"
        doc += f"- **Goal**: {journey.goal}\n"
        doc += f"- **Trigger**: {journey.trigger.description}\n"
        doc += f"- **Components**: {', '.join(journey.step_components())}\n"

    if journey_map.common_patterns:
        doc += "\n### Common Patterns\n\n"
        for pattern in journey_map.common_patterns:
            doc += f"- **{pattern.name}** ({len(pattern.occurrences)} journeys): {pattern.business_purpose}\n"

    doc += f"\n## User Personas ({len(context.personas)} total)\n\n"
    for persona in context.personas:
        doc += f"- **{persona.name}**: {persona.description}\n"
        if persona.goals:
            doc += f"  - Goals: {', '.join(persona.goals[:3])}\n"
    if not context.personas:
        doc += "No personas provided.\n"

    doc += f"\n## Data Model ({len(context.data_model)} entities)\n\n"
    doc += _table(
        [[e.name, e.business_purpose, len(e.attributes), len(e.operations)] for e in context.data_model],
        ["Entity", "Purpose", "Attributes", "Operations"],
    )

    doc += f"""
## Graph Analysis

### Network Statistics

- **Total Nodes**: {stats.total_nodes}
- **Total Edges**: {stats.total_edges}
- **Graph Density**: {stats.graph_density * 100:.2f}%
- **Average Connectivity**: {stats.avg_connectivity:.2f}
- **Clusters**: {stats.clusters}
- **Isolated Nodes**: {stats.isolated_nodes}

### Node Distribution

"""
    doc += _table(sorted(stats.nodes_by_type.items()), ["Node Type", "Count"])
    doc += "\n### Edge Distribution\n\n"
    doc += _table(sorted(stats.edges_by_type.items()), ["Edge Type", "Count"])

    if analysis:
        summary = analysis.get("coverage_gaps_summary", {})
        doc += f"\n### Coverage Gaps ({summary.get('total_gaps', 0)} total)\n\n"
        doc += _table(sorted(summary.get("by_type", {}).items()), ["Gap Type", "Count"])

        top = analysis.get("centrality", {}).get("top_nodes", {}).get("betweenness_centrality", [])
        if top:
            doc += "\n### Most Central Elements (betweenness)\n\n"
            doc += _table([[node, f"{score:.3f}"] for node, score in top], ["Node", "Score"])

    doc += "\n## Business Domains\n"
    for domain in component_graph.business_domains:
        doc += f"\n### {domain.name}\n\n"
        doc += f"- Features: {len(domain.features)}\n"
        doc += f"- Core Components: {len(domain.core_components)}\n"
        doc += f"- Boundary Components: {len(domain.boundary_components)}\n"
        doc += f"- Vocabulary: {', '.join(t.term for t in domain.domain_language)}\n"

    if files:
        doc += "\n## Files Generated\n\n"
        for name in files:
            doc += f"- `{name}`: {OUTPUT_FILE_DESCRIPTIONS.get(name, '')}\n"

    return doc
