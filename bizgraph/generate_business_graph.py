#!/usr/bin/env python3
"""
Business Graph Generator

Reads a project facts file (components, files, data flows and business
context), maps components to business features, traces user journeys and
writes the unified business graph plus a markdown report.

Usage:
    python3 -m bizgraph.generate_business_graph facts.json
    python3 -m bizgraph.generate_business_graph facts.json -o out/ --analyze
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from bizgraph.config import ConfigError, load_config
from bizgraph.facts import load_facts_file
from bizgraph.json_utils import JSONValidationError
from bizgraph.pipeline import run_pipeline, summarize, write_outputs

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Business Graph Generator - reverse-engineer business context from code facts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  # Basic usage (writes to ./business-graph-output)
  python3 -m bizgraph.generate_business_graph project_facts.json

  # With NetworkX analysis (centrality, communities, cycles, coverage gaps)
  python3 -m bizgraph.generate_business_graph project_facts.json --analyze

  # Custom output directory and configuration
  python3 -m bizgraph.generate_business_graph project_facts.json -o out/ --config bizgraph.yaml

  # Only the Cytoscape export, without positions
  python3 -m bizgraph.generate_business_graph project_facts.json --formats cytoscape --no-positions

Export formats:
  - json       full graph (nodes, edges, clusters, metadata)
  - cytoscape  Cytoscape.js elements
  - d3         D3 force-layout nodes/links
        '''
    )

    parser.add_argument('facts_file', help='Path to the project facts JSON file')
    parser.add_argument('-o', '--output-dir', default='business-graph-output',
                        help='Output directory (default: business-graph-output)')
    parser.add_argument('--config', help='Configuration file (YAML or JSON)')
    parser.add_argument('--formats', nargs='+', choices=['json', 'cytoscape', 'd3', 'graphml', 'gexf', 'vis'],
                        help='Graph export formats (default: from config)')
    parser.add_argument('--analyze', action='store_true',
                        help='Run NetworkX analysis and write graph-analysis.json')
    parser.add_argument('--no-metadata', action='store_true',
                        help='Omit node data, metrics, clusters and metadata from exports')
    parser.add_argument('--no-positions', action='store_true',
                        help='Omit layout positions from exports')
    parser.add_argument('--compact', action='store_true', help='Write compact (non-indented) JSON')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: from config, INFO)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("%s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level or config.log_level),
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    if args.formats:
        config.export.formats = args.formats
    if args.no_metadata:
        config.export.include_metadata = False
    if args.no_positions:
        config.export.include_positions = False
    if args.compact:
        config.export.pretty_print = False

    print(f"Loading facts from {args.facts_file}...")
    try:
        project, context = load_facts_file(args.facts_file)
    except (FileNotFoundError, JSONValidationError) as e:
        logger.error("Could not load facts: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"Found {len(project.components)} components, {len(context.capabilities)} capabilities, "
          f"{len(context.user_stories)} user stories")

    print("\nBuilding business graph...")
    result = run_pipeline(project, context, config, analyze=args.analyze)

    summary = summarize(result)
    stats = summary['statistics']
    print(f"  - {summary['features']} business features in {summary['domains']} domains")
    print(f"  - {summary['journeys']} user journeys ({summary['patterns']} common patterns)")
    print(f"  - {stats['total_nodes']} nodes, {stats['total_edges']} edges, {stats['clusters']} clusters")
    print(f"  - Graph density: {stats['graph_density'] * 100:.2f}%")

    if result.analysis:
        gaps = result.analysis['coverage_gaps_summary']
        print(f"\nCoverage gaps detected: {gaps['total_gaps']}")
        for gap_type, count in gaps['by_type'].items():
            if count:
                print(f"  - {gap_type}: {count}")

    output_dir = Path(args.output_dir)
    written = write_outputs(result, output_dir, config, source=str(args.facts_file))

    print(f"\nOutput written to: {output_dir}")
    for path in written:
        print(f"  - {path.name}")

    print("\n✓ Business graph generation complete!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
