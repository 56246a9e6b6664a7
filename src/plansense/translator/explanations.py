"""
Per-operation explanations and performance diagnostics.

Every OperationKind has exactly one explainer, registered with the
@explains decorator. An explainer turns a node into a NodeExplanation:
a lowercase description clause plus performance notes, warnings and
recommendations for that kind of operation.

Two further passes look at any node regardless of kind:
- detect_performance_issues(): large scans, disk sorts, high cost and
  row-estimate divergence
- generate_recommendations(): index, work_mem and statistics advice

The three passes overlap on purpose. The narrative assembler merges their
output and removes duplicate lines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from plansense.config import Config, get_config
from plansense.parser.models import OperationKind, PlanNode
from plansense.translator.formatting import (
    extract_filter_columns,
    format_condition,
    format_filter,
    format_group_keys,
    format_number,
    format_sort_keys,
    pluralize_rows,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeExplanation:
    """What one plan node does, in words."""

    description: str
    performance_notes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


Explainer = Callable[[PlanNode, Config], NodeExplanation]

_EXPLAINERS: dict[OperationKind, Explainer] = {}


def explains(*kinds: OperationKind) -> Callable[[Explainer], Explainer]:
    """
    Register a function as the explainer for one or more operation kinds.

    Example:
        @explains(OperationKind.UNIQUE)
        def _explain_unique(node, config):
            return NodeExplanation("remove duplicate rows")

    Raises:
        ValueError: If a kind already has an explainer
    """

    def decorator(func: Explainer) -> Explainer:
        for kind in kinds:
            if kind in _EXPLAINERS:
                existing = _EXPLAINERS[kind]
                raise ValueError(
                    f"Operation '{kind.value}' already explained by {existing.__name__}. "
                    f"Cannot register {func.__name__}"
                )
            _EXPLAINERS[kind] = func
        return func

    return decorator


def registered_kinds() -> set[OperationKind]:
    """Operation kinds that have an explainer."""
    return set(_EXPLAINERS)


# =============================================================================
# Shared phrasing
# =============================================================================


def _table(node: PlanNode) -> str:
    return node.table_name or "unknown"


def _index(node: PlanNode) -> str:
    return node.index_name or "unknown"


def _where(node: PlanNode, lead: str) -> str:
    """Filter clause appended to a description, or nothing."""
    return f"{lead}{format_filter(node.filter)}" if node.filter else ""


def _workers(node: PlanNode) -> int:
    return node.worker_count or 1


def _actual_note(node: PlanNode, verb: str) -> str | None:
    if node.loops == 0:
        return "This step was never executed"
    if node.actual_rows is None:
        return None
    return f"Actually {verb} {pluralize_rows(node.actual_rows)}"


def _notes(*notes: str | None) -> list[str]:
    return [note for note in notes if note]


def _rows_above(node: PlanNode, threshold: int) -> bool:
    return node.estimated_rows is not None and node.estimated_rows > threshold


# =============================================================================
# Scans
# =============================================================================


@explains(OperationKind.SEQ_SCAN)
def _explain_seq_scan(node: PlanNode, config: Config) -> NodeExplanation:
    large = _rows_above(node, config.seq_scan_row_threshold)
    recommendations = []
    if large and node.filter:
        columns = extract_filter_columns(node.filter)
        if columns:
            recommendations.append(f"Consider adding an index on the filtered columns: {columns}")

    return NodeExplanation(
        description=(
            f"perform a sequential scan on the {_table(node)} table"
            f"{_where(node, ', filtering for rows where ')}"
        ),
        performance_notes=_notes(
            f"This will scan approximately {format_number(node.estimated_rows)} rows",
            _actual_note(node, "scanned"),
        ),
        warnings=["Large table scan - consider adding an index"] if large else [],
        recommendations=recommendations,
    )


@explains(OperationKind.PARALLEL_SEQ_SCAN)
def _explain_parallel_seq_scan(node: PlanNode, config: Config) -> NodeExplanation:
    workers = _workers(node)
    recommendations = []
    if node.filter:
        columns = extract_filter_columns(node.filter)
        if columns:
            recommendations.append(f"Consider adding an index on the filtered columns: {columns}")

    return NodeExplanation(
        description=(
            f"perform a parallel sequential scan on the {_table(node)} table using "
            f"{workers} worker process{'es' if workers > 1 else ''}"
            f"{_where(node, ', filtering for rows where ')}"
        ),
        performance_notes=_notes(
            f"This will scan approximately {format_number(node.estimated_rows)} rows "
            f"across {workers} worker{'s' if workers > 1 else ''}",
            _actual_note(node, "scanned"),
        ),
        warnings=(
            ["Very large parallel table scan"]
            if _rows_above(node, config.parallel_seq_scan_row_threshold)
            else []
        ),
        recommendations=recommendations,
    )


@explains(OperationKind.INDEX_SCAN)
def _explain_index_scan(node: PlanNode, config: Config) -> NodeExplanation:
    condition = f" where {format_condition(node.index_condition)}" if node.index_condition else ""
    warnings = []
    recommendations = []
    if node.filter:
        warnings.append("Additional filtering after index lookup may indicate a suboptimal index")
        columns = extract_filter_columns(node.filter)
        if columns:
            recommendations.append(f"Consider a composite index including: {columns}")

    return NodeExplanation(
        description=(
            f"look up rows using the {_index(node)} index{condition}"
            f"{_where(node, ', then filter for rows where ')}"
        ),
        performance_notes=_notes(
            f"Expected to find {pluralize_rows(node.estimated_rows)}",
            _actual_note(node, "found"),
        ),
        warnings=warnings,
        recommendations=recommendations,
    )


@explains(OperationKind.INDEX_ONLY_SCAN)
def _explain_index_only_scan(node: PlanNode, config: Config) -> NodeExplanation:
    condition = f" where {format_condition(node.index_condition)}" if node.index_condition else ""
    return NodeExplanation(
        description=f"perform an index-only scan using the {_index(node)} index{condition}",
        performance_notes=_notes(
            "This efficient scan will read only from the index, not the table",
            f"Expected to find {pluralize_rows(node.estimated_rows)}",
            _actual_note(node, "found"),
        ),
    )


@explains(OperationKind.BITMAP_HEAP_SCAN)
def _explain_bitmap_heap_scan(node: PlanNode, config: Config) -> NodeExplanation:
    return NodeExplanation(
        description=(
            f"scan the {_table(node)} table using a bitmap to efficiently locate matching rows"
            f"{_where(node, ', filtering for rows where ')}"
        ),
        performance_notes=_notes(
            f"Expected to find {pluralize_rows(node.estimated_rows)}",
            "Uses a bitmap to avoid random I/O",
            _actual_note(node, "found"),
        ),
    )


@explains(OperationKind.BITMAP_INDEX_SCAN)
def _explain_bitmap_index_scan(node: PlanNode, config: Config) -> NodeExplanation:
    condition = (
        f" for rows where {format_condition(node.index_condition)}"
        if node.index_condition
        else ""
    )
    return NodeExplanation(
        description=f"build a bitmap using the {_index(node)} index{condition}",
        performance_notes=["Creates a bitmap of matching row locations for efficient heap access"],
    )


@explains(OperationKind.SUBQUERY_SCAN)
def _explain_subquery_scan(node: PlanNode, config: Config) -> NodeExplanation:
    alias = node.alias or node.table_name
    return NodeExplanation(
        description=(
            f"scan the results of a subquery{f' (aliased as {alias})' if alias else ''}"
            f"{_where(node, ', filtering for rows where ')}"
        ),
        performance_notes=[f"Expected to produce {pluralize_rows(node.estimated_rows)}"],
    )


@explains(OperationKind.CTE_SCAN)
def _explain_cte_scan(node: PlanNode, config: Config) -> NodeExplanation:
    return NodeExplanation(
        description=(
            f"read the results of the common table expression {_table(node)}"
            f"{_where(node, ', filtering for rows where ')}"
        ),
        performance_notes=[f"Expected to produce {pluralize_rows(node.estimated_rows)}"],
    )


# =============================================================================
# Joins
# =============================================================================


@explains(OperationKind.NESTED_LOOP)
def _explain_nested_loop(node: PlanNode, config: Config) -> NodeExplanation:
    join_filter = (
        f", keeping pairs where {format_condition(node.join_condition)}"
        if node.join_condition
        else ""
    )
    large = _rows_above(node, config.nested_loop_row_threshold)
    return NodeExplanation(
        description=f"join the results using a nested loop{join_filter}",
        performance_notes=_notes(
            f"Expected to produce {pluralize_rows(node.estimated_rows)}",
            _actual_note(node, "produced"),
        ),
        warnings=(
            ["Large nested loop join - consider if a hash join would be more efficient"]
            if large
            else []
        ),
    )


@explains(OperationKind.HASH_JOIN)
def _explain_hash_join(node: PlanNode, config: Config) -> NodeExplanation:
    condition = f" on {format_condition(node.hash_condition)}" if node.hash_condition else ""
    return NodeExplanation(
        description=f"join the results using a hash join{condition}",
        performance_notes=_notes(
            f"Expected to produce {pluralize_rows(node.estimated_rows)}",
            "Builds a hash table from the smaller input for efficient lookups",
            _actual_note(node, "produced"),
        ),
    )


@explains(OperationKind.MERGE_JOIN)
def _explain_merge_join(node: PlanNode, config: Config) -> NodeExplanation:
    condition = f" on {format_condition(node.join_condition)}" if node.join_condition else ""
    return NodeExplanation(
        description=f"join the results using a merge join{condition}",
        performance_notes=_notes(
            f"Expected to produce {pluralize_rows(node.estimated_rows)}",
            "Both inputs must be sorted on the join key",
            _actual_note(node, "produced"),
        ),
    )


# =============================================================================
# Materialization
# =============================================================================


@explains(OperationKind.HASH)
def _explain_hash(node: PlanNode, config: Config) -> NodeExplanation:
    spilled = node.hash_batches is not None and node.hash_batches > 1
    return NodeExplanation(
        description="build a hash table from the input rows",
        performance_notes=_notes(
            f"Hashing {pluralize_rows(node.estimated_rows)}",
            f"Buckets: {node.hash_buckets}" if node.hash_buckets else None,
            f"Batches: {node.hash_batches}" if node.hash_batches else None,
            f"Memory usage: {node.memory_usage}" if node.memory_usage else None,
        ),
        warnings=(
            [f"Hash table spilled to disk in {node.hash_batches} batches - consider increasing work_mem"]
            if spilled
            else []
        ),
        recommendations=(
            ["Increase work_mem so the hash table fits in memory"] if spilled else []
        ),
    )


def _sort_explanation(node: PlanNode, verb: str) -> NodeExplanation:
    keys = f" by {format_sort_keys(node.sort_keys)}" if node.sort_keys else ""
    return NodeExplanation(
        description=f"{verb}{keys}",
        performance_notes=_notes(
            f"Sorting {pluralize_rows(node.estimated_rows)}",
            f"Sort method: {node.sort_method}" if node.sort_method else None,
            f"Memory usage: {node.memory_usage}" if node.memory_usage else None,
            f"Disk usage: {node.disk_usage}" if node.disk_usage else None,
        ),
        warnings=(
            ["Sort spilled to disk - consider increasing work_mem"] if node.disk_usage else []
        ),
        recommendations=(
            ["Increase work_mem to avoid disk-based sorting"] if node.disk_usage else []
        ),
    )


@explains(OperationKind.SORT)
def _explain_sort(node: PlanNode, config: Config) -> NodeExplanation:
    return _sort_explanation(node, "sort the results")


@explains(OperationKind.INCREMENTAL_SORT)
def _explain_incremental_sort(node: PlanNode, config: Config) -> NodeExplanation:
    return _sort_explanation(node, "finish sorting the partially sorted results")


def _grouped_by(node: PlanNode) -> str:
    return f" grouped by {format_group_keys(node.group_keys)}" if node.group_keys else ""


@explains(OperationKind.AGGREGATE)
def _explain_aggregate(node: PlanNode, config: Config) -> NodeExplanation:
    return NodeExplanation(
        description=f"compute aggregate functions{_grouped_by(node)}",
        performance_notes=[f"Processing {pluralize_rows(node.estimated_rows)}"],
    )


@explains(OperationKind.HASH_AGGREGATE)
def _explain_hash_aggregate(node: PlanNode, config: Config) -> NodeExplanation:
    return NodeExplanation(
        description=f"compute aggregate functions using hash grouping{_grouped_by(node)}",
        performance_notes=[
            f"Processing {pluralize_rows(node.estimated_rows)}",
            "Uses hash table for efficient grouping",
        ],
    )


@explains(OperationKind.GROUP_AGGREGATE)
def _explain_group_aggregate(node: PlanNode, config: Config) -> NodeExplanation:
    return NodeExplanation(
        description=f"compute aggregate functions on pre-sorted groups{_grouped_by(node)}",
        performance_notes=[
            f"Processing {pluralize_rows(node.estimated_rows)}",
            "Input must be sorted by group keys",
        ],
    )


@explains(OperationKind.UNIQUE)
def _explain_unique(node: PlanNode, config: Config) -> NodeExplanation:
    return NodeExplanation(
        description="remove duplicate rows",
        performance_notes=[f"Processing {pluralize_rows(node.estimated_rows)}"],
    )


@explains(OperationKind.LIMIT)
def _explain_limit(node: PlanNode, config: Config) -> NodeExplanation:
    if node.estimated_rows is None:
        return NodeExplanation(description="limit the number of rows returned")
    return NodeExplanation(description=f"limit the results to {pluralize_rows(node.estimated_rows)}")


@explains(OperationKind.MATERIALIZE)
def _explain_materialize(node: PlanNode, config: Config) -> NodeExplanation:
    return NodeExplanation(
        description="keep the input rows in memory so they can be read again",
        performance_notes=[f"Materializing {pluralize_rows(node.estimated_rows)}"],
    )


# =============================================================================
# Parallel control
# =============================================================================


def _launch_warnings(node: PlanNode) -> list[str]:
    planned, launched = node.worker_count, node.workers_launched
    if planned is not None and launched is not None and launched < planned:
        return [f"Only {launched} of {planned} planned parallel workers were launched"]
    return []


@explains(OperationKind.GATHER)
def _explain_gather(node: PlanNode, config: Config) -> NodeExplanation:
    workers = _workers(node)
    return NodeExplanation(
        description="gather results from parallel worker processes",
        performance_notes=[
            f"Collecting results from {workers} worker process{'es' if workers > 1 else ''}"
        ],
        warnings=_launch_warnings(node),
    )


@explains(OperationKind.GATHER_MERGE)
def _explain_gather_merge(node: PlanNode, config: Config) -> NodeExplanation:
    workers = _workers(node)
    return NodeExplanation(
        description="gather and merge sorted results from parallel worker processes",
        performance_notes=[
            f"Merging sorted results from {workers} worker process{'es' if workers > 1 else ''}",
            "Maintains sort order while combining parallel results",
        ],
        warnings=_launch_warnings(node),
    )


# =============================================================================
# Public API
# =============================================================================


def get_node_explanation(node: PlanNode, config: Config | None = None) -> NodeExplanation:
    """
    Explain what a single plan node does.

    Args:
        node: A resolved plan node
        config: Thresholds; defaults to get_config()

    Returns:
        The explanation from the node's registered explainer, or a generic
        one for operation kinds without an explainer
    """
    config = config or get_config()
    kind = node.kind

    if kind is not None and kind in _EXPLAINERS:
        return _EXPLAINERS[kind](node, config)

    logger.debug("No explainer for %r, using generic description", node.operation_kind)
    on_table = f" on {node.table_name}" if node.table_name else ""
    return NodeExplanation(
        description=f"perform a {node.operation_kind} operation{on_table}",
        performance_notes=(
            [f"Expected to process {pluralize_rows(node.estimated_rows)}"]
            if node.estimated_rows
            else []
        ),
    )


def row_estimate_is_off(node: PlanNode, config: Config | None = None) -> bool:
    """
    Check whether actual rows diverge from the estimate by more than the
    configured ratio.

    Nodes without an estimate (or estimating zero rows), without ANALYZE
    data, or that never executed are never flagged.
    """
    config = config or get_config()
    estimated, actual = node.estimated_rows, node.actual_rows
    if not estimated or actual is None or node.loops == 0:
        return False
    return abs(actual - estimated) / estimated > config.row_estimate_error_ratio


def detect_performance_issues(node: PlanNode, config: Config | None = None) -> list[str]:
    """Diagnose performance problems visible on a single node."""
    config = config or get_config()
    kind = node.kind
    rows = format_number(node.estimated_rows)
    issues: list[str] = []

    if kind is OperationKind.SEQ_SCAN and _rows_above(node, config.seq_scan_row_threshold):
        issues.append(f"Large sequential scan on {_table(node)} ({rows} rows)")

    if kind is OperationKind.PARALLEL_SEQ_SCAN and _rows_above(
        node, config.parallel_seq_scan_row_threshold
    ):
        issues.append(f"Very large parallel sequential scan on {_table(node)} ({rows} rows)")

    if kind is OperationKind.NESTED_LOOP and _rows_above(node, config.nested_loop_row_threshold):
        issues.append(f"Large nested loop join producing {rows} rows")

    if kind in (OperationKind.SORT, OperationKind.INCREMENTAL_SORT) and node.disk_usage:
        issues.append(f"Sort operation spilled to disk ({node.disk_usage})")

    if node.total_cost is not None and node.total_cost > config.high_cost_threshold:
        issues.append(f"High cost operation: {node.operation_kind} (cost: {node.total_cost:.2f})")

    if row_estimate_is_off(node, config):
        issues.append(
            f"Row estimate significantly off: estimated {rows}, "
            f"actual {format_number(node.actual_rows)}"
        )

    return issues


def generate_recommendations(node: PlanNode, config: Config | None = None) -> list[str]:
    """Suggest fixes for the problems visible on a single node."""
    config = config or get_config()
    kind = node.kind
    recommendations: list[str] = []

    if (
        kind is OperationKind.SEQ_SCAN
        and node.filter
        and _rows_above(node, config.seq_scan_index_row_threshold)
    ):
        columns = extract_filter_columns(node.filter)
        if columns:
            recommendations.append(
                f"Add an index on {_table(node)}({columns}) to avoid sequential scan"
            )

    if kind is OperationKind.INDEX_SCAN and node.filter:
        columns = extract_filter_columns(node.filter)
        if columns:
            recommendations.append(f"Consider a composite index including filtered columns: {columns}")

    if kind in (OperationKind.SORT, OperationKind.INCREMENTAL_SORT) and node.disk_usage:
        recommendations.append("Increase work_mem to avoid disk-based sorting")

    if kind is OperationKind.NESTED_LOOP and _rows_above(node, config.nested_loop_row_threshold):
        recommendations.append(
            "Consider if statistics are up to date - large nested loops may indicate outdated statistics"
        )

    if row_estimate_is_off(node, config):
        recommendations.append("Update table statistics with ANALYZE to improve query planning")

    return recommendations
