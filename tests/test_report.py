"""
Tests for the markdown report.
"""

from bizgraph.graph_analysis import business_graph_to_networkx, run_all_analysis
from bizgraph.report import generate_report


class TestGenerateReport:
    """Tests for generate_report()"""

    def test_sections(self, context, component_graph, journey_map, business_graph):
        report = generate_report(context, component_graph, journey_map, business_graph, source="facts.json")

        assert report.startswith("# Business Context Report")
        assert "Source: facts.json" in report
        assert "## User Stories (5 total)" in report
        assert "## Business Features (4 total)" in report
        assert "## User Journeys (4 total)" in report
        assert "### Dashboard Overview Journey" in report
        assert "- **Total Nodes**: 32" in report
        assert "### Coverage Gaps" not in report

    def test_tables(self, context, component_graph, journey_map, business_graph):
        report = generate_report(context, component_graph, journey_map, business_graph)

        assert "| Feature " in report
        assert "| Task Management " in report
        assert "| user_story " in report

    def test_shared_components_listed(self, context, component_graph, journey_map, business_graph):
        report = generate_report(context, component_graph, journey_map, business_graph)
        assert "`TodoList` also referenced by Dashboard Analytics" in report

    def test_analysis_section(self, context, component_graph, journey_map, business_graph):
        analysis = run_all_analysis(business_graph_to_networkx(business_graph))
        report = generate_report(context, component_graph, journey_map, business_graph, analysis=analysis)

        assert f"### Coverage Gaps ({analysis['coverage_gaps_summary']['total_gaps']} total)" in report
        assert "| unimplemented_stories " in report
        assert "### Most Central Elements (betweenness)" in report

    def test_files_listed(self, context, component_graph, journey_map, business_graph):
        report = generate_report(context, component_graph, journey_map, business_graph,
                                 files=["business-graph.json", "business-report.md"])

        assert "- `business-graph.json`: Full graph representation" in report
        assert "- `business-report.md`: This report" in report

    def test_empty_tables(self, context, component_graph, journey_map, business_graph):
        context.capabilities = []
        report = generate_report(context, component_graph, journey_map, business_graph)

        assert "## Business Capabilities (0 total)\n\n_None._" in report
