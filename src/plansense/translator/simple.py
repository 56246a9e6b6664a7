"""
Compact translator: one terse line per plan node.

Meant for quick reading in a terminal. The detailed translator in
translator.py explains each operation in prose; this one lists operation,
table, index, rows and cost, and keeps only the coarsest warnings.
"""

from __future__ import annotations

from plansense.config import Config, get_config
from plansense.parser.models import OperationKind, PlanNode
from plansense.translator.formatting import format_number, strip_casts
from plansense.translator.models import TranslationResult, unique

MAX_PREDICATE_CHARS = 100


def simplify_predicate(text: str) -> str:
    """Collapse doubled parentheses, drop casts and truncate long predicates."""
    simplified = text.replace("((", "(").replace("))", ")")
    simplified = strip_casts(simplified)
    if len(simplified) > MAX_PREDICATE_CHARS:
        return simplified[:MAX_PREDICATE_CHARS] + "..."
    return simplified


class SimplePlanTranslator:
    """Builds the compact narrative. Stateless apart from its thresholds."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    def translate(self, root: PlanNode) -> TranslationResult:
        nodes = list(root.iter_post_order())
        return TranslationResult(
            summary=self._summarize(nodes),
            steps=[self._describe(node) for node in nodes],
            warnings=self._warnings(nodes),
            recommendations=self._recommendations(nodes),
        )

    def _summarize(self, nodes: list[PlanNode]) -> str:
        tables = unique([n.table_name for n in nodes if n.table_name])
        indexes = unique([n.index_name for n in nodes if n.index_name])
        has_parallel = any(
            n.is_parallel or n.kind in (OperationKind.GATHER, OperationKind.GATHER_MERGE)
            for n in nodes
        )
        has_sort = any("Sort" in n.operation_kind for n in nodes)
        limit = next((n for n in nodes if n.kind is OperationKind.LIMIT), None)
        max_cost = max((n.total_cost or 0.0 for n in nodes), default=0.0)

        parts: list[str] = []
        if tables:
            parts.append(
                f"This query accesses {len(tables)} table{'s' if len(tables) != 1 else ''}: "
                f"{', '.join(tables)}."
            )
        else:
            parts.append("This query does not read from any table.")

        if indexes:
            parts.append(
                f"It uses {len(indexes)} index{'es' if len(indexes) != 1 else ''}: "
                f"{', '.join(indexes)}."
            )
        if has_parallel:
            parts.append("The query uses parallel execution for better performance.")
        if has_sort:
            parts.append("Results are sorted before returning.")
        if limit is not None:
            rows = limit.estimated_rows if limit.estimated_rows else "a few"
            parts.append(f"Output is limited to {rows} rows.")
        if max_cost > self.config.high_cost_threshold:
            parts.append(f"Total cost: {max_cost:.0f} (high).")

        return " ".join(parts)

    def _describe(self, node: PlanNode) -> str:
        text = node.operation_kind
        if node.table_name:
            text += f" on {node.table_name}"
        if node.index_name:
            text += f" using index {node.index_name}"
        if node.estimated_rows:
            text += f" ({format_number(node.estimated_rows)} rows)"
        if node.total_cost and node.total_cost > self.config.step_cost_display_threshold:
            text += f" [cost: {node.total_cost:.0f}]"

        if node.filter:
            text += f" - Filter: {simplify_predicate(node.filter)}"
        if node.index_condition:
            text += f" - Condition: {simplify_predicate(node.index_condition)}"
        if node.sort_keys:
            text += f" - Sort by: {', '.join(node.sort_keys)}"
        return text

    def _warnings(self, nodes: list[PlanNode]) -> list[str]:
        warnings: list[str] = []
        for node in nodes:
            cost = node.total_cost
            if cost is not None and cost > self.config.high_cost_threshold:
                warnings.append(f"High cost {node.operation_kind}: {cost:.0f}")

            if (
                "Seq Scan" in node.operation_kind
                and node.estimated_rows is not None
                and node.estimated_rows > self.config.seq_scan_row_threshold
            ):
                warnings.append(
                    f"Large sequential scan on {node.table_name}: "
                    f"{format_number(node.estimated_rows)} rows"
                )

            if "Index Scan" in node.operation_kind and node.filter:
                warnings.append(f"Additional filtering after index lookup on {node.table_name}")
        return unique(warnings)

    def _recommendations(self, nodes: list[PlanNode]) -> list[str]:
        recommendations: list[str] = []
        for node in nodes:
            if (
                "Seq Scan" in node.operation_kind
                and node.filter
                and node.estimated_rows is not None
                and node.estimated_rows > self.config.seq_scan_index_row_threshold
            ):
                recommendations.append(
                    f"Consider adding an index on {node.table_name} for the filter conditions"
                )

            cost = node.total_cost
            if cost is not None and cost > self.config.expensive_query_cost:
                recommendations.append(
                    f"Investigate optimizing the {node.operation_kind} operation (cost: {cost:.0f})"
                )
        return unique(recommendations)


def translate_simple(root: PlanNode, config: Config | None = None) -> TranslationResult:
    """Translate a plan tree into the compact narrative."""
    return SimplePlanTranslator(config).translate(root)
