"""
Output renderers for different formats.

Separates presentation logic from parsing and translation.
Uses schema.py Pydantic models as the single source of truth
for JSON serialization.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, Any

from plansense.output.schema import (
    ExplainReportSchema,
    TimingSchema,
    TranslationSchema,
)

if TYPE_CHECKING:
    from plansense.engine import ExplainReport


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


def render(report: "ExplainReport", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render an explain report in the specified format.

    Args:
        report: Report to render
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(report)
    elif format == OutputFormat.JSON:
        return render_json(report)
    elif format == OutputFormat.MARKDOWN:
        return render_markdown(report)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Schema-based serialization
# =============================================================================


def _report_to_schema(report: "ExplainReport") -> ExplainReportSchema:
    parsed = report.parse_result
    translation = report.translation

    return ExplainReportSchema(
        ok=report.ok,
        database=report.database_type.value,
        error=report.error,
        source=report.source,
        mode="simple" if report.simple else "detailed",
        node_count=report.node_count,
        has_analyze_data=parsed.has_analyze_data,
        timing=TimingSchema(
            planning_time_ms=parsed.planning_time_ms,
            execution_time_ms=parsed.execution_time_ms,
        ),
        translation=(
            TranslationSchema(
                summary=translation.summary,
                steps=list(translation.steps),
                warnings=list(translation.warnings),
                recommendations=list(translation.recommendations),
            )
            if translation is not None
            else None
        ),
        duration_ms=round(report.duration_ms, 3),
    )


def _report_to_dict(report: "ExplainReport") -> dict[str, Any]:
    return _report_to_schema(report).model_dump(mode="json")


def _timing_line(report: "ExplainReport") -> str | None:
    parsed = report.parse_result
    parts: list[str] = []
    if parsed.planning_time_ms is not None:
        parts.append(f"Planning: {parsed.planning_time_ms:.3f} ms")
    if parsed.execution_time_ms is not None:
        parts.append(f"Execution: {parsed.execution_time_ms:.3f} ms")
    return " | ".join(parts) if parts else None


# =============================================================================
# Text renderer (terminal)
# =============================================================================


def render_text(report: "ExplainReport") -> str:
    """Render an explain report as plain terminal text."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("PlanSense Query Plan Explanation")
    lines.append("=" * 60)
    lines.append("")

    lines.append(f"Database: {report.database_type.value}")
    if report.source:
        lines.append(f"Source: {report.source}")
    timing = _timing_line(report)
    if timing:
        lines.append(f"Timing: {timing}")
    lines.append("")

    translation = report.translation
    if translation is None:
        lines.append(f"✗ {report.error or 'Could not parse the plan'}")
        lines.append("")
        lines.append("=" * 60)
        return "\n".join(lines)

    lines.append("Summary:")
    lines.append(f"  {translation.summary}")
    lines.append("")

    lines.append("-" * 60)
    lines.append("EXECUTION STEPS")
    lines.append("-" * 60)
    for i, step in enumerate(translation.steps, 1):
        lines.append(f"{i}. {step}")
    lines.append("")

    if translation.warnings:
        lines.append("-" * 60)
        lines.append("WARNINGS")
        lines.append("-" * 60)
        for warning in translation.warnings:
            lines.append(f"  ⚠ {warning}")
        lines.append("")

    if translation.recommendations:
        lines.append("-" * 60)
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 60)
        for recommendation in translation.recommendations:
            lines.append(f"  • {recommendation}")
        lines.append("")

    if not translation.warnings and not translation.recommendations:
        lines.append("✓ No performance issues detected")
        lines.append("")

    lines.append("=" * 60)
    return "\n".join(lines)


# =============================================================================
# JSON renderer (uses schema models)
# =============================================================================


def render_json(report: "ExplainReport", indent: int = 2) -> str:
    """
    Render an explain report as stable JSON.

    Suitable for scripts, CI pipelines and log aggregation.
    """
    return json.dumps(_report_to_dict(report), indent=indent, ensure_ascii=False)


# =============================================================================
# Markdown renderer
# =============================================================================


def render_markdown(report: "ExplainReport") -> str:
    """
    Render an explain report as Markdown.

    Suitable for GitHub comments and issues, chat messages, documentation.
    """
    lines: list[str] = []

    lines.append("# PlanSense Query Plan Explanation")
    lines.append("")

    translation = report.translation
    if translation is None:
        lines.append(f"❌ **Could not parse the plan:** {report.error}")
        return "\n".join(lines)

    if translation.warnings:
        lines.append("🟡 **Warnings found**")
    else:
        lines.append("✅ **No performance issues detected**")
    lines.append("")

    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Database | `{report.database_type.value}` |")
    lines.append(f"| Plan nodes | {report.node_count} |")
    parsed = report.parse_result
    if parsed.planning_time_ms is not None:
        lines.append(f"| Planning time | {parsed.planning_time_ms:.3f} ms |")
    if parsed.execution_time_ms is not None:
        lines.append(f"| Execution time | {parsed.execution_time_ms:.3f} ms |")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append(translation.summary)
    lines.append("")

    lines.append("## Execution Steps")
    lines.append("")
    for i, step in enumerate(translation.steps, 1):
        lines.append(f"{i}. {step}")
    lines.append("")

    if translation.warnings:
        lines.append("## Warnings")
        lines.append("")
        for warning in translation.warnings:
            lines.append(f"- {warning}")
        lines.append("")

    if translation.recommendations:
        lines.append("## Recommendations")
        lines.append("")
        for recommendation in translation.recommendations:
            lines.append(f"- {recommendation}")
        lines.append("")

    return "\n".join(lines)
