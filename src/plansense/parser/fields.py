"""
Field extraction for node header and property lines.

Both extractors are ordered lists of (pattern, handler) pairs where the
first matching pattern wins. Order matters: a header carrying ANALYZE
statistics also satisfies the looser cost-only shape, so the most specific
shape must be tried first.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from plansense.parser.models import BufferStats, CostRange, PlanNode

logger = logging.getLogger(__name__)

_NUM = r"\d+(?:\.\d+)?"

_COST = rf"\(cost=(?P<cost_start>{_NUM})\.\.(?P<cost_total>{_NUM})\s+rows=(?P<rows>\d+)\s+width=(?P<width>\d+)\)"
_ACTUAL = (
    rf"\(actual time=(?P<time_start>{_NUM})\.\.(?P<time_total>{_NUM})"
    rf"\s+rows=(?P<actual_rows>{_NUM})\s+loops=(?P<loops>\d+)\)"
)
_ACTUAL_NO_TIMING = rf"\(actual rows=(?P<actual_rows>{_NUM})\s+loops=(?P<loops>\d+)\)"

# Ordered most to least specific. First match wins.
HEADER_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("analyze", re.compile(rf"^(?P<name>.+?)\s+{_COST}\s+{_ACTUAL}$")),
    ("analyze_no_timing", re.compile(rf"^(?P<name>.+?)\s+{_COST}\s+{_ACTUAL_NO_TIMING}$")),
    ("estimate", re.compile(rf"^(?P<name>.+?)\s+{_COST}$")),
    ("analyze_costs_off", re.compile(rf"^(?P<name>.+?)\s+{_ACTUAL}$")),
    ("analyze_costs_off_no_timing", re.compile(rf"^(?P<name>.+?)\s+{_ACTUAL_NO_TIMING}$")),
    ("never_executed", re.compile(rf"^(?P<name>.+?)\s+(?:{_COST}\s+)?\(never executed\)")),
]

_ANNOTATION_START = re.compile(r"\s+\((?:cost=|actual |never executed)")


def _to_number(text: str) -> int | float:
    """Parse a numeric literal, keeping integers as int."""
    if "." in text:
        return float(text)
    return int(text)


def strip_branch_arrow(content: str) -> str:
    """Remove the '->' prefix that marks a child node."""
    if content.startswith("->"):
        return content[2:].lstrip()
    return content


def extract_header_fields(content: str) -> dict[str, Any]:
    """
    Pull planner estimates and ANALYZE statistics out of a node header.

    Args:
        content: Stripped header line, with or without the branch arrow

    Returns:
        Keyword arguments for PlanNode. Always contains "header"; numeric
        fields are only present when the header carried them.
    """
    text = strip_branch_arrow(content)

    for shape, pattern in HEADER_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue

        groups = match.groupdict()
        fields: dict[str, Any] = {"header": groups["name"].strip()}

        if groups.get("cost_start") is not None:
            fields["estimated_cost"] = CostRange(
                startup=float(groups["cost_start"]),
                total=float(groups["cost_total"]),
            )
            fields["estimated_rows"] = int(groups["rows"])
            fields["row_width"] = int(groups["width"])

        if groups.get("time_start") is not None:
            fields["actual_time"] = CostRange(
                startup=float(groups["time_start"]),
                total=float(groups["time_total"]),
            )

        if shape == "never_executed":
            fields["actual_rows"] = 0
            fields["loops"] = 0
        elif groups.get("actual_rows") is not None:
            fields["actual_rows"] = _to_number(groups["actual_rows"])
            fields["loops"] = int(groups["loops"])

        return fields

    # No known shape (COSTS OFF, or a format this version doesn't know).
    header = _ANNOTATION_START.split(text, maxsplit=1)[0].strip()
    logger.debug("Header matched no cost pattern: %r", text)
    return {"header": header}


# =============================================================================
# Property lines
# =============================================================================


def split_keys(text: str) -> list[str]:
    """
    Split a key list on top-level commas.

    Commas inside parentheses or string literals belong to an expression
    (e.g. ``coalesce(a, b)``) and do not separate keys.
    """
    keys: list[str] = []
    depth = 0
    in_quote = False
    current: list[str] = []

    for char in text:
        if char == "'":
            in_quote = not in_quote
        elif not in_quote:
            if char == "(":
                depth += 1
            elif char == ")":
                depth = max(depth - 1, 0)
            elif char == "," and depth == 0:
                keys.append("".join(current).strip())
                current = []
                continue
        current.append(char)

    tail = "".join(current).strip()
    if tail:
        keys.append(tail)
    return [key for key in keys if key]


def parse_buffers(text: str) -> BufferStats | None:
    """
    Parse the body of a Buffers line.

    "shared hit=12 read=3, temp read=5 written=5" sets shared_hit,
    shared_read, temp_read and temp_written; every other counter stays None.
    """
    counts: dict[str, int] = {}

    for segment in text.split(","):
        match = re.match(r"^\s*(shared|local|temp)\s+(.*)$", segment)
        if not match:
            continue
        scope, body = match.groups()
        for key, value in re.findall(r"(\w+)=(\d+)", body):
            field_name = f"{scope}_{key}"
            if field_name in BufferStats.model_fields:
                counts[field_name] = int(value)

    if not counts:
        return None
    return BufferStats(**counts)


def _set_sort_keys(match: re.Match[str], node: PlanNode) -> None:
    node.sort_keys = split_keys(match.group(1))


def _set_group_keys(match: re.Match[str], node: PlanNode) -> None:
    node.group_keys = split_keys(match.group(1))


def _set_filter(match: re.Match[str], node: PlanNode) -> None:
    node.filter = match.group(1)


def _set_index_condition(match: re.Match[str], node: PlanNode) -> None:
    node.index_condition = match.group(1)


def _set_join_condition(match: re.Match[str], node: PlanNode) -> None:
    node.join_condition = match.group(1)


def _set_hash_condition(match: re.Match[str], node: PlanNode) -> None:
    node.hash_condition = match.group(1)


def _set_recheck_condition(match: re.Match[str], node: PlanNode) -> None:
    node.recheck_condition = match.group(1)


def _set_workers_planned(match: re.Match[str], node: PlanNode) -> None:
    node.worker_count = int(match.group(1))


def _set_workers_launched(match: re.Match[str], node: PlanNode) -> None:
    node.workers_launched = int(match.group(1))


def _set_buffers(match: re.Match[str], node: PlanNode) -> None:
    stats = parse_buffers(match.group(1))
    if stats is not None:
        node.buffer_stats = stats


def _set_sort_method(match: re.Match[str], node: PlanNode) -> None:
    node.sort_method = match.group("method").strip()
    space_type = match.group("space_type")
    if space_type == "Disk":
        node.disk_usage = match.group("space")
    elif space_type == "Memory":
        node.memory_usage = match.group("space")


def _set_hash_stats(match: re.Match[str], node: PlanNode) -> None:
    node.hash_buckets = int(match.group(1))
    line = match.string
    batches = re.search(r"Batches:\s*(\d+)", line)
    if batches:
        node.hash_batches = int(batches.group(1))
    memory = re.search(r"Memory Usage:\s*(\S+)", line)
    if memory:
        node.memory_usage = memory.group(1)


def _set_rows_removed(match: re.Match[str], node: PlanNode) -> None:
    node.rows_removed_by_filter = int(float(match.group(1)))


PropertyHandler = Callable[[re.Match[str], PlanNode], None]

# Ordered. First match wins, at most one field per line.
PROPERTY_PATTERNS: list[tuple[re.Pattern[str], PropertyHandler]] = [
    (re.compile(r"^Sort Key:\s*(.+)$"), _set_sort_keys),
    (re.compile(r"^Group Key:\s*(.+)$"), _set_group_keys),
    (re.compile(r"^Filter:\s*(.+)$"), _set_filter),
    (re.compile(r"^Index Cond:\s*(.+)$"), _set_index_condition),
    (re.compile(r"^Join Filter:\s*(.+)$"), _set_join_condition),
    (re.compile(r"^Hash Cond:\s*(.+)$"), _set_hash_condition),
    (re.compile(r"^Workers Planned:\s*(\d+)$"), _set_workers_planned),
    (re.compile(r"^Buffers:\s*(.+)$"), _set_buffers),
    (re.compile(r"^Merge Cond:\s*(.+)$"), _set_join_condition),
    (re.compile(r"^Recheck Cond:\s*(.+)$"), _set_recheck_condition),
    (re.compile(r"^Workers Launched:\s*(\d+)$"), _set_workers_launched),
    (
        re.compile(
            r"^Sort Method:\s*(?P<method>.+?)"
            r"(?:\s+(?P<space_type>Memory|Disk):\s*(?P<space>\S+))?$"
        ),
        _set_sort_method,
    ),
    (re.compile(r"^Buckets:\s*(\d+)"), _set_hash_stats),
    (re.compile(rf"^Rows Removed by Filter:\s*({_NUM})$"), _set_rows_removed),
]


def apply_property(content: str, node: PlanNode) -> bool:
    """
    Assign the field described by a property line onto a node.

    Args:
        content: Stripped property line
        node: The node currently open in the tree builder

    Returns:
        True if a pattern matched and a field was set
    """
    for pattern, handler in PROPERTY_PATTERNS:
        match = pattern.match(content)
        if match:
            handler(match, node)
            return True

    logger.debug("No extractor for property line: %r", content)
    return False
