"""
NetworkX analysis of the business graph.

Converts a BusinessGraph into an ``nx.DiGraph`` and runs structural
analyses over it:

- centrality: degree (total, in, out), betweenness, closeness (+ top nodes)
- communities: greedy modularity and label propagation on the undirected view
- cycles: directed simple cycles (sampled) and the undirected cycle basis
- coverage gaps: stories nobody implements, components no journey traverses,
  entities nothing uses, isolated nodes, structural holes

Parallel edges of different types between the same pair of nodes collapse
into one DiGraph edge whose ``types`` attribute lists all of them.
"""

import itertools
import logging
from datetime import datetime
from typing import Any, Dict, List

import networkx as nx
import networkx.algorithms.community as nx_comm

from bizgraph.business_graph_builder import BusinessGraph, EdgeType, NodeType

logger = logging.getLogger(__name__)

TOP_K = 5
MAX_CYCLES = 100
STRUCTURAL_HOLE_THRESHOLD = 0.5


# =============================================================================
# CONVERSION
# =============================================================================

def business_graph_to_networkx(graph: BusinessGraph) -> nx.DiGraph:
    G = nx.DiGraph()

    for node in graph.nodes:
        G.add_node(
            node.id,
            type=node.type.value,
            label=node.label,
            importance=node.metrics.importance,
            connectivity=node.metrics.connectivity,
        )

    for edge in graph.edges:
        if G.has_edge(edge.source, edge.target):
            data = G.edges[edge.source, edge.target]
            data["types"].append(edge.type.value)
            data["weight"] = max(data["weight"], edge.weight)
        else:
            G.add_edge(edge.source, edge.target, types=[edge.type.value], weight=edge.weight, label=edge.label)

    return G


def node_link_export(G: nx.DiGraph) -> Dict[str, Any]:
    return nx.node_link_data(G)


def _nodes_of_type(G: nx.DiGraph, node_type: NodeType) -> List[str]:
    return [n for n, data in G.nodes(data=True) if data.get("type") == node_type.value]


def _has_edge_type(G: nx.DiGraph, edges, edge_type: EdgeType) -> bool:
    return any(edge_type.value in G.edges[u, v]["types"] for u, v in edges)


# =============================================================================
# ANALYSES
# =============================================================================

def analyze_centrality(G: nx.DiGraph) -> Dict[str, Any]:
    """Centrality measures with the top nodes for each."""
    results: Dict[str, Any] = {}
    measures = {
        "degree_centrality": nx.degree_centrality,
        "betweenness_centrality": nx.betweenness_centrality,
        "closeness_centrality": nx.closeness_centrality,
        "in_degree_centrality": nx.in_degree_centrality,
        "out_degree_centrality": nx.out_degree_centrality,
    }

    for name, measure in measures.items():
        try:
            results[name] = measure(G)
        except (nx.NetworkXException, ZeroDivisionError) as e:
            logger.warning("Could not compute %s: %s", name, e)
            results[name] = f"Error computing {name}: {e}"

    results["top_nodes"] = {}
    for name in measures:
        scores = results[name]
        if isinstance(scores, dict):
            ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))[:TOP_K]
            results["top_nodes"][name] = [[node, score] for node, score in ranked]

    return results


def analyze_communities(G: nx.DiGraph) -> Dict[str, Any]:
    """Community detection on the undirected view."""
    results: Dict[str, Any] = {}
    G_undirected = G.to_undirected()

    if G_undirected.number_of_edges() == 0:
        singletons = [[n] for n in sorted(G_undirected.nodes())]
        results["greedy_modularity"] = {
            "num_communities": len(singletons),
            "sizes": [1] * len(singletons),
            "communities": singletons[:10],
        }
        results["modularity"] = 0.0
        return results

    try:
        communities = list(nx_comm.greedy_modularity_communities(G_undirected))
        results["greedy_modularity"] = {
            "num_communities": len(communities),
            "sizes": [len(c) for c in communities],
            "communities": [sorted(c) for c in communities[:10]],
        }
        results["modularity"] = nx_comm.modularity(G_undirected, communities)
    except (nx.NetworkXException, ZeroDivisionError) as e:
        logger.warning("Greedy modularity failed: %s", e)
        results["greedy_modularity"] = f"Error in greedy modularity: {e}"

    try:
        communities_lp = list(nx_comm.label_propagation_communities(G_undirected))
        results["label_propagation"] = {
            "num_communities": len(communities_lp),
            "sizes": sorted((len(c) for c in communities_lp), reverse=True),
        }
    except nx.NetworkXException as e:
        logger.warning("Label propagation failed: %s", e)
        results["label_propagation"] = f"Error in label propagation: {e}"

    return results


def analyze_cycles(G: nx.DiGraph) -> Dict[str, Any]:
    """Directed cycles (first MAX_CYCLES) and the undirected cycle basis."""
    results: Dict[str, Any] = {}

    cycles = list(itertools.islice(nx.simple_cycles(G), MAX_CYCLES))
    results["has_cycles"] = len(cycles) > 0
    results["cycle_count"] = len(cycles)
    if len(cycles) == MAX_CYCLES:
        results["note"] = f"Stopped after {MAX_CYCLES} cycles"

    lengths: Dict[int, int] = {}
    for cycle in cycles:
        lengths[len(cycle)] = lengths.get(len(cycle), 0) + 1
    results["cycle_length_distribution"] = lengths
    results["cycles"] = cycles[:20]

    basis = nx.cycle_basis(G.to_undirected())
    results["cycle_basis"] = {
        "num_fundamental_cycles": len(basis),
        "basis_cycles": basis[:10],
    }
    return results


def detect_coverage_gaps(G: nx.DiGraph) -> Dict[str, List[Dict[str, Any]]]:
    """Find business elements the code does not cover.

    Detects:
    1. Unimplemented stories: user stories with no implementing component
    2. Untraversed components: components no journey passes through
    3. Unused entities: data entities no capability or rule touches
    4. Isolated nodes: nodes with no edges at all
    5. Structural holes: nodes with betweenness > 0.5 whose removal splits the graph
    """
    gaps: Dict[str, List[Dict[str, Any]]] = {
        "unimplemented_stories": [],
        "untraversed_components": [],
        "unused_entities": [],
        "isolated_nodes": [],
        "structural_holes": [],
    }

    for story in _nodes_of_type(G, NodeType.USER_STORY):
        if not _has_edge_type(G, G.out_edges(story), EdgeType.IMPLEMENTS):
            gaps["unimplemented_stories"].append({
                "node": story,
                "severity": "warning",
                "description": f"User story '{G.nodes[story]['label']}' has no implementing component",
                "recommendation": "Link the story to the components that deliver it",
            })

    for component in _nodes_of_type(G, NodeType.COMPONENT):
        traversed = any(
            G.nodes[u].get("type") == NodeType.USER_JOURNEY.value for u, _ in G.in_edges(component)
        )
        if not traversed:
            gaps["untraversed_components"].append({
                "node": component,
                "severity": "info",
                "description": f"Component '{G.nodes[component]['label']}' is not part of any user journey",
                "recommendation": "Check whether the component is reachable from an entry point",
            })

    for entity in _nodes_of_type(G, NodeType.DATA_ENTITY):
        if G.in_degree(entity) == 0:
            gaps["unused_entities"].append({
                "node": entity,
                "severity": "warning",
                "description": f"Data entity '{G.nodes[entity]['label']}' is not used by any capability or rule",
                "recommendation": "Remove the entity or attach it to the capability that owns it",
            })

    for node in sorted(nx.isolates(G)):
        gaps["isolated_nodes"].append({
            "node": node,
            "type": G.nodes[node].get("type"),
            "severity": "info",
            "description": f"'{G.nodes[node]['label']}' has no relationships",
        })

    if G.number_of_nodes() > 2:
        betweenness = nx.betweenness_centrality(G)
        components_before = nx.number_weakly_connected_components(G)
        for node, score in sorted(betweenness.items()):
            if score <= STRUCTURAL_HOLE_THRESHOLD:
                continue
            G_copy = G.copy()
            G_copy.remove_node(node)
            if nx.number_weakly_connected_components(G_copy) > components_before:
                gaps["structural_holes"].append({
                    "node": node,
                    "betweenness": score,
                    "severity": "warning",
                    "description": f"'{G.nodes[node]['label']}' is a single point of contact between parts of the graph",
                    "recommendation": "Consider whether other elements should relate directly",
                })

    return gaps


def run_all_analysis(G: nx.DiGraph) -> Dict[str, Any]:
    """Run every analysis and return the combined results."""
    logger.info("Running graph analysis on %d nodes, %d edges", G.number_of_nodes(), G.number_of_edges())

    gaps = detect_coverage_gaps(G)
    results = {
        "metadata": {
            "analysis_date": datetime.now().isoformat(),
            "num_nodes": G.number_of_nodes(),
            "num_edges": G.number_of_edges(),
            "density": nx.density(G),
            "weakly_connected_components": nx.number_weakly_connected_components(G) if len(G) else 0,
        },
        "centrality": analyze_centrality(G),
        "communities": analyze_communities(G),
        "cycles": analyze_cycles(G),
        "coverage_gaps": gaps,
        "coverage_gaps_summary": {
            "total_gaps": sum(len(v) for v in gaps.values()),
            "by_type": {k: len(v) for k, v in gaps.items()},
        },
    }

    logger.info("Coverage gaps detected: %d", results["coverage_gaps_summary"]["total_gaps"])
    return results
