"""
Pipeline driver: facts -> component graph -> journeys -> business graph.

run_pipeline() does no I/O; write_outputs() writes the output bundle.
"""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from bizgraph.business_graph_builder import (
    BusinessGraph,
    BusinessGraphBuilder,
    ExportOptions,
    UnsupportedExportFormat,
)
from bizgraph.component_business_mapper import BusinessComponentGraph, ComponentBusinessMapper
from bizgraph.config import BizGraphConfig
from bizgraph.facts import BusinessContext, ProjectFacts
from bizgraph.graph_analysis import business_graph_to_networkx, node_link_export, run_all_analysis
from bizgraph.journey_tracer import JourneyTracer, UserJourneyMap
from bizgraph.json_utils import save_json
from bizgraph.report import generate_report

logger = logging.getLogger(__name__)

EXPORT_FILES = {
    "json": "business-graph.json",
    "cytoscape": "business-graph-cytoscape.json",
    "d3": "business-graph-d3.json",
}


@dataclass
class PipelineResult:
    context: BusinessContext
    component_graph: BusinessComponentGraph
    journey_map: UserJourneyMap
    graph: BusinessGraph
    builder: BusinessGraphBuilder
    node_link: Dict[str, Any]
    analysis: Optional[Dict[str, Any]] = None


def run_pipeline(project: ProjectFacts, context: BusinessContext,
                 config: Optional[BizGraphConfig] = None,
                 analyze: bool = False) -> PipelineResult:
    """Run every stage on already-loaded facts."""
    config = config or BizGraphConfig()

    mapper = ComponentBusinessMapper(project)
    component_graph = mapper.map_components_to_business_features(
        context.user_stories, context.capabilities, context.data_model
    )

    tracer = JourneyTracer(project, component_graph.component_mappings)
    journey_map = tracer.transform_data_flows_to_journeys()

    builder = BusinessGraphBuilder(config)
    graph = builder.build_graph(context, component_graph, journey_map)

    G = business_graph_to_networkx(graph)
    analysis = run_all_analysis(G) if analyze else None

    return PipelineResult(
        context=context,
        component_graph=component_graph,
        journey_map=journey_map,
        graph=graph,
        builder=builder,
        node_link=node_link_export(G),
        analysis=analysis,
    )


def write_outputs(result: PipelineResult, output_dir: Path,
                  config: Optional[BizGraphConfig] = None,
                  source: str = "project facts") -> List[Path]:
    """Write the output bundle to output_dir and return the written paths."""
    config = config or BizGraphConfig()
    export = config.export
    output_dir = Path(output_dir)
    written: List[Path] = []

    written.append(save_json(result.context.to_dict(), output_dir / "business-context.json", export.pretty_print))
    written.append(save_json(result.component_graph.to_dict(), output_dir / "component-mapping.json",
                             export.pretty_print))
    written.append(save_json(result.journey_map.to_dict(), output_dir / "user-journeys.json", export.pretty_print))

    for fmt in export.formats:
        options = ExportOptions(
            format=fmt,
            include_metadata=export.include_metadata,
            include_positions=export.include_positions,
            pretty_print=export.pretty_print,
        )
        try:
            data = result.builder.export_graph_data(options)
        except UnsupportedExportFormat as e:
            logger.warning("Skipping export: %s", e)
            continue
        written.append(save_json(data, output_dir / EXPORT_FILES[fmt], export.pretty_print))

    written.append(save_json(result.node_link, output_dir / "business-graph-node-link.json", export.pretty_print))

    if result.analysis is not None:
        written.append(save_json(result.analysis, output_dir / "graph-analysis.json", export.pretty_print))

    report_path = output_dir / "business-report.md"
    names = [p.name for p in written] + [report_path.name]
    report = generate_report(
        result.context, result.component_graph, result.journey_map, result.graph,
        analysis=result.analysis, source=source, files=names,
    )
    report_path.write_text(report, encoding="utf-8")
    written.append(report_path)

    logger.info("Wrote %d files to %s", len(written), output_dir)
    return written


def summarize(result: PipelineResult) -> Dict[str, Any]:
    """Counts shown by the CLI after a run."""
    stats = result.graph.metadata.statistics
    return {
        "components": len(result.component_graph.component_mappings),
        "features": len(result.component_graph.features),
        "domains": len(result.component_graph.business_domains),
        "journeys": len(result.journey_map.journeys),
        "patterns": len(result.journey_map.common_patterns),
        "statistics": asdict(stats),
    }
