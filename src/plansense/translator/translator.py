"""
Narrative assembler: plan tree -> summary, steps, warnings, recommendations.

The tree is walked children-first, which is the order PostgreSQL produces
rows in, so step 1 is always a leaf and the last step is the root. A single
walk builds the steps and collects warnings and recommendations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from plansense.config import Config, get_config
from plansense.parser.models import OperationKind, PlanNode
from plansense.translator.explanations import (
    detect_performance_issues,
    generate_recommendations,
    get_node_explanation,
)
from plansense.translator.formatting import capitalize_first, format_number
from plansense.translator.models import TranslationResult, unique

logger = logging.getLogger(__name__)

# Actual rows off by more than this factor earn an inline flag on the step.
ESTIMATION_ERROR_FACTOR = 10


@dataclass(frozen=True)
class ExecutionStep:
    """One node of the plan, explained, with its position in execution order."""

    step_number: int
    description: str
    operation_kind: str
    table_name: str | None
    index_name: str | None
    estimated_rows: int | None
    actual_rows: int | float | None
    cost: float | None
    is_parallel: bool
    performance_notes: tuple[str, ...]
    warnings: tuple[str, ...]


class PlanTranslator:
    """
    Turns a parsed plan tree into a detailed narrative.

    Stateless apart from its thresholds: translating the same tree twice
    gives equal results.

    Example:
        >>> result = PlanTranslator().translate(parse_result.root)
        >>> result.steps[0]
        'Perform a sequential scan on the orders table [Est. rows: 5.0K] - ...'
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    def translate(self, root: PlanNode) -> TranslationResult:
        steps, warnings, recommendations = self._walk(root)
        logger.debug(
            "Translated %d steps, %d warnings, %d recommendations",
            len(steps),
            len(warnings),
            len(recommendations),
        )
        return TranslationResult(
            summary=self._summarize(root, steps),
            steps=[self._format_step(step) for step in steps],
            warnings=unique(warnings),
            recommendations=unique(recommendations),
        )

    def _walk(self, root: PlanNode) -> tuple[list[ExecutionStep], list[str], list[str]]:
        steps: list[ExecutionStep] = []
        warnings: list[str] = []
        recommendations: list[str] = []

        for number, node in enumerate(root.iter_post_order(), start=1):
            explanation = get_node_explanation(node, self.config)
            issues = detect_performance_issues(node, self.config)
            node_warnings = explanation.warnings + issues

            steps.append(
                ExecutionStep(
                    step_number=number,
                    description=explanation.description,
                    operation_kind=node.operation_kind,
                    table_name=node.table_name,
                    index_name=node.index_name,
                    estimated_rows=node.estimated_rows,
                    actual_rows=node.actual_rows,
                    cost=node.total_cost,
                    is_parallel=node.is_parallel,
                    performance_notes=tuple(explanation.performance_notes),
                    warnings=tuple(unique(node_warnings)),
                )
            )
            warnings.extend(node_warnings)
            recommendations.extend(explanation.recommendations)
            recommendations.extend(generate_recommendations(node, self.config))

        return steps, warnings, recommendations

    # =========================================================================
    # Summary
    # =========================================================================

    def _summarize(self, root: PlanNode, steps: list[ExecutionStep]) -> str:
        if not steps:
            return "No execution steps found."

        scans = [s for s in steps if "Scan" in s.operation_kind]
        joins = [s for s in steps if "Loop" in s.operation_kind or "Join" in s.operation_kind]
        sorts = [s for s in steps if "Sort" in s.operation_kind]
        limits = [s for s in steps if s.operation_kind == OperationKind.LIMIT.value]
        gathers = [s for s in steps if "Gather" in s.operation_kind]

        clauses: list[str] = []

        if scans:
            main_scan = scans[0]
            if main_scan.is_parallel or "Parallel" in main_scan.operation_kind:
                access = "performs a parallel scan"
            elif "Index" in main_scan.operation_kind:
                access = "uses index lookups"
            else:
                access = "performs table scans"
            tables = unique([s.table_name for s in scans if s.table_name])
            if tables:
                access += f" on {', '.join(tables)}"
            clauses.append(access)

        if joins:
            clause = f"performs {len(joins)} join operation{'s' if len(joins) > 1 else ''}"
            if any(s.operation_kind == OperationKind.NESTED_LOOP.value for s in joins):
                clause += " (using nested loops)"
            clauses.append(clause)

        if sorts:
            clauses.append("sorts the results")

        if limits:
            limit_rows = limits[0].estimated_rows
            if limit_rows is None:
                clauses.append("returns a limited number of rows")
            else:
                clauses.append(f"returns only {format_number(limit_rows)} rows")

        if not clauses:
            summary = f"This query runs {len(steps)} plan step{'s' if len(steps) > 1 else ''}."
        elif len(clauses) == 1:
            summary = f"This query {clauses[0]}."
        else:
            summary = f"This query {', '.join(clauses[:-1])}, and {clauses[-1]}."

        if gathers:
            summary += " The query uses parallel execution to improve performance."

        total_cost = root.total_cost or 0.0
        if total_cost > self.config.expensive_query_cost:
            summary += f" This is an expensive query with a total cost of {total_cost:.0f}."
        elif total_cost > self.config.high_cost_threshold:
            summary += f" The query has a moderate cost of {total_cost:.0f}."

        if root.estimated_rows:
            summary += (
                f" PostgreSQL estimates it will process approximately "
                f"{format_number(root.estimated_rows)} rows."
            )

        return summary

    # =========================================================================
    # Steps
    # =========================================================================

    def _format_step(self, step: ExecutionStep) -> str:
        text = capitalize_first(step.description)

        metrics: list[str] = []
        if step.estimated_rows is not None:
            metrics.append(f"Est. rows: {format_number(step.estimated_rows)}")
        if step.actual_rows is not None:
            metrics.append(f"Actual: {format_number(step.actual_rows)}")
        if step.cost is not None and step.cost > self.config.step_cost_display_threshold:
            metrics.append(f"Cost: {step.cost:.0f}")
        if metrics:
            text += f" [{', '.join(metrics)}]"

        if step.performance_notes:
            text += " - " + "; ".join(step.performance_notes)

        for warning in step.warnings:
            text += f" ⚠️ {warning}"

        if _large_estimation_error(step):
            text += " ⚠️ Large estimation error"

        return text


def _large_estimation_error(step: ExecutionStep) -> bool:
    estimated, actual = step.estimated_rows, step.actual_rows
    if not estimated or not actual:
        return False
    return (
        actual > estimated * ESTIMATION_ERROR_FACTOR
        or actual < estimated / ESTIMATION_ERROR_FACTOR
    )


def translate(root: PlanNode, config: Config | None = None) -> TranslationResult:
    """
    Translate a plan tree into a detailed narrative.

    Convenience wrapper around PlanTranslator(config).translate(root).
    """
    return PlanTranslator(config).translate(root)
