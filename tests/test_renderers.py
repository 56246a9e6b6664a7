"""
Tests for the service layer and output renderers.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from plansense.config import Config
from plansense.engine import ExplainReport, ExplainService
from plansense.exceptions import ParseError
from plansense.output import OutputFormat, render, render_json, render_markdown, render_text
from plansense.parser import DatabaseType

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def service() -> ExplainService:
    return ExplainService(config=Config())


def explain_fixture(service: ExplainService, name: str, simple: bool = False) -> ExplainReport:
    return service.explain_file(FIXTURES_DIR / f"{name}.txt", simple=simple)


# =============================================================================
# Service
# =============================================================================

class TestExplainService:
    """detect -> parse -> translate."""

    def test_successful_report(self, service: ExplainService) -> None:
        report = explain_fixture(service, "limit_sort_seq_scan")

        assert report.ok
        assert report.error is None
        assert report.database_type is DatabaseType.POSTGRESQL
        assert report.node_count == 3
        assert report.translation is not None
        assert len(report.translation.steps) == 3
        assert report.source.endswith("limit_sort_seq_scan.txt")
        assert report.duration_ms >= 0

    def test_simple_mode(self, service: ExplainService) -> None:
        report = explain_fixture(service, "limit_sort_seq_scan", simple=True)
        assert report.simple
        assert report.translation.steps[0] == "Seq Scan on orders (10.0K rows) [cost: 1000]"

    def test_failed_parse_is_reported_not_raised(self, service: ExplainService) -> None:
        report = service.explain("nothing to see here")

        assert not report.ok
        assert report.translation is None
        assert report.node_count == 0
        assert not report.has_warnings
        assert report.error.startswith("Could not detect database type")

    def test_mysql_is_recognized(self, service: ExplainService) -> None:
        report = explain_fixture(service, "mysql_explain")
        assert report.database_type is DatabaseType.MYSQL
        assert report.error == "MySQL parsing is not yet implemented"

    def test_explicit_database(self, service: ExplainService) -> None:
        report = service.explain("Seq Scan on users", database=DatabaseType.POSTGRESQL)
        assert report.ok

    def test_unreadable_file_raises(self, service: ExplainService, tmp_path: Path) -> None:
        with pytest.raises(ParseError) as exc_info:
            service.explain_file(tmp_path / "missing.txt")
        assert exc_info.value.source == "file_read"


# =============================================================================
# Text
# =============================================================================

class TestRenderText:
    """Plain terminal text."""

    def test_sections(self, service: ExplainService) -> None:
        output = render_text(explain_fixture(service, "disk_sort_analyze"))

        assert "PlanSense Query Plan Explanation" in output
        assert "Database: postgresql" in output
        assert "Timing: Planning: 0.142 ms | Execution: 1290.803 ms" in output
        assert "EXECUTION STEPS" in output
        assert "1. Perform a sequential scan on the payments table" in output
        assert "  ⚠ Sort spilled to disk - consider increasing work_mem" in output
        assert "  • Increase work_mem to avoid disk-based sorting" in output

    def test_clean_plan(self, service: ExplainService) -> None:
        output = render_text(explain_fixture(service, "seq_scan_estimate"))

        assert "WARNINGS" not in output
        assert "RECOMMENDATIONS" not in output
        assert "✓ No performance issues detected" in output

    def test_error(self, service: ExplainService) -> None:
        output = render_text(service.explain("nothing to see here"))

        assert "✗ Could not detect database type" in output
        assert "EXECUTION STEPS" not in output


# =============================================================================
# JSON
# =============================================================================

class TestRenderJson:
    """Machine-readable output."""

    def test_structure(self, service: ExplainService) -> None:
        data = json.loads(render_json(explain_fixture(service, "disk_sort_analyze")))

        assert data["version"] == "1.0"
        assert data["ok"] is True
        assert data["database"] == "postgresql"
        assert data["error"] is None
        assert data["mode"] == "detailed"
        assert data["node_count"] == 2
        assert data["has_analyze_data"] is True
        assert data["timing"] == {"planning_time_ms": 0.142, "execution_time_ms": 1290.803}
        assert len(data["translation"]["steps"]) == 2
        assert "Increase work_mem to avoid disk-based sorting" in data["translation"]["recommendations"]

    def test_keeps_unicode(self, service: ExplainService) -> None:
        output = render_json(explain_fixture(service, "disk_sort_analyze"))
        assert "⚠️" in output

    def test_error(self, service: ExplainService) -> None:
        data = json.loads(render_json(service.explain("")))

        assert data["ok"] is False
        assert data["translation"] is None
        assert data["error"] == "Empty input - no EXPLAIN output found"

    def test_simple_mode(self, service: ExplainService) -> None:
        data = json.loads(render_json(explain_fixture(service, "seq_scan_estimate", simple=True)))
        assert data["mode"] == "simple"


# =============================================================================
# Markdown
# =============================================================================

class TestRenderMarkdown:
    """GitHub-flavored Markdown."""

    def test_sections(self, service: ExplainService) -> None:
        output = render_markdown(explain_fixture(service, "disk_sort_analyze"))

        assert output.startswith("# PlanSense Query Plan Explanation")
        assert "🟡 **Warnings found**" in output
        assert "| Database | `postgresql` |" in output
        assert "| Plan nodes | 2 |" in output
        assert "| Execution time | 1290.803 ms |" in output
        assert "## Summary" in output
        assert "## Execution Steps" in output
        assert "## Recommendations" in output

    def test_clean_plan(self, service: ExplainService) -> None:
        output = render_markdown(explain_fixture(service, "seq_scan_estimate"))

        assert "✅ **No performance issues detected**" in output
        assert "## Warnings" not in output

    def test_error(self, service: ExplainService) -> None:
        output = render_markdown(service.explain("nothing to see here"))
        assert "❌ **Could not parse the plan:** Could not detect database type" in output


def test_render_dispatch(service: ExplainService) -> None:
    report = explain_fixture(service, "seq_scan_estimate")

    assert render(report) == render_text(report)
    assert render(report, OutputFormat.JSON) == render_json(report)
    assert render(report, OutputFormat.MARKDOWN) == render_markdown(report)
