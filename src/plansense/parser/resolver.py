"""
Table, index and operation resolution for plan nodes.

Runs after the tree is built, directly on each node's header text. This
is kept apart from cost extraction on purpose: a plan captured with
COSTS OFF has no cost annotation at all but still names its tables,
indexes and operations.

Three ordered pattern lists are applied independently; within each list
the first match wins.
"""

from __future__ import annotations

import re

from plansense.parser.models import OperationKind, PlanNode

_IDENT = r'(?:"[^"]+"|[\w$]+)(?:\.(?:"[^"]+"|[\w$]+))?'

TABLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\bon\s+({_IDENT})(?:\s+(\w+))?$"),
    re.compile(rf"Seq Scan on\s+({_IDENT})(?:\s+(\w+))?"),
    re.compile(rf"Index.*Scan.*\bon\s+({_IDENT})(?:\s+(\w+))?"),
    re.compile(rf"Bitmap.*Scan on\s+({_IDENT})(?:\s+(\w+))?"),
]

INDEX_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"Index.*Scan(?:\s+Backward)?\s+using\s+({_IDENT})"),
    re.compile(rf"Bitmap Index Scan on\s+({_IDENT})"),
]

# Ordered most specific first: "Gather Merge" before "Gather",
# "Hash ... Join" before "Hash", "Parallel Seq Scan" before "Seq Scan".
OPERATION_PATTERNS: list[tuple[re.Pattern[str], OperationKind]] = [
    (re.compile(r"^Parallel Seq Scan"), OperationKind.PARALLEL_SEQ_SCAN),
    (re.compile(r"^Seq Scan"), OperationKind.SEQ_SCAN),
    (re.compile(r"^(?:Parallel )?Index Only Scan"), OperationKind.INDEX_ONLY_SCAN),
    (re.compile(r"^(?:Parallel )?Index Scan"), OperationKind.INDEX_SCAN),
    (re.compile(r"^(?:Parallel )?Bitmap Heap Scan"), OperationKind.BITMAP_HEAP_SCAN),
    (re.compile(r"^Bitmap Index Scan"), OperationKind.BITMAP_INDEX_SCAN),
    (re.compile(r"^Subquery Scan"), OperationKind.SUBQUERY_SCAN),
    (re.compile(r"^CTE Scan"), OperationKind.CTE_SCAN),
    (re.compile(r"^Nested Loop"), OperationKind.NESTED_LOOP),
    (re.compile(r"^(?:Parallel )?Hash (?:\w+ )*Join"), OperationKind.HASH_JOIN),
    (re.compile(r"^Merge (?:\w+ )*Join"), OperationKind.MERGE_JOIN),
    (re.compile(r"^(?:Parallel )?Hash(?=\s|$)"), OperationKind.HASH),
    (re.compile(r"^Incremental Sort"), OperationKind.INCREMENTAL_SORT),
    (re.compile(r"^Sort(?=\s|$)"), OperationKind.SORT),
    (re.compile(r"^(?:Finalize |Partial )?HashAggregate"), OperationKind.HASH_AGGREGATE),
    (re.compile(r"^(?:Finalize |Partial )?GroupAggregate"), OperationKind.GROUP_AGGREGATE),
    (re.compile(r"^(?:Finalize |Partial )?Aggregate"), OperationKind.AGGREGATE),
    (re.compile(r"^Unique"), OperationKind.UNIQUE),
    (re.compile(r"^Limit"), OperationKind.LIMIT),
    (re.compile(r"^Gather Merge"), OperationKind.GATHER_MERGE),
    (re.compile(r"^Gather"), OperationKind.GATHER),
    (re.compile(r"^Materialize"), OperationKind.MATERIALIZE),
]


def resolve_operation_kind(header: str) -> str:
    """
    Map a header to its canonical operation tag.

    Unrecognized headers keep their own text as the tag.
    """
    for pattern, kind in OPERATION_PATTERNS:
        if pattern.match(header):
            return kind.value
    return header


def resolve_table(header: str) -> tuple[str | None, str | None]:
    """Find the (table, alias) a header refers to."""
    # The "on" target of a bitmap index scan is an index, not a table.
    if header.startswith("Bitmap Index Scan"):
        return None, None

    for pattern in TABLE_PATTERNS:
        match = pattern.search(header)
        if match:
            return match.group(1), match.group(2)
    return None, None


def resolve_index(header: str) -> str | None:
    """Find the index a header refers to."""
    for pattern in INDEX_PATTERNS:
        match = pattern.search(header)
        if match:
            return match.group(1)
    return None


def resolve_node(node: PlanNode) -> None:
    """Fill in table, alias, index and operation kind for a single node."""
    header = node.header or node.raw_header.strip()

    table, alias = resolve_table(header)
    if table is not None:
        node.table_name = table
        node.alias = alias

    index = resolve_index(header)
    if index is not None:
        node.index_name = index

    node.operation_kind = resolve_operation_kind(header)


def resolve_tree(root: PlanNode) -> None:
    """Resolve every node in the tree."""
    for node in root.iter_nodes():
        resolve_node(node)
