"""
Pydantic models for PostgreSQL EXPLAIN text output.

The structure is:
- ParseResult: Top-level wrapper containing the plan root, timing info
  and the error message when nothing could be parsed
- PlanNode: Recursive structure representing each node in the query plan tree

Unlike EXPLAIN (FORMAT JSON), the text format carries no field names for
most values, so every field here is optional except the operation kind and
the header line the node was built from. A missing value stays None; it is
never defaulted to zero, because "no estimate" and "estimated zero rows"
mean different things when comparing estimates with actuals.

Reference: https://www.postgresql.org/docs/current/using-explain.html
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field


class DatabaseType(str, Enum):
    """Database dialects recognized by the dialect detector."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    UNKNOWN = "unknown"


class OperationKind(str, Enum):
    """
    Canonical operation tags the resolver can assign.

    Headers that match none of these keep their own text as the operation
    kind and get the generic explanation.
    """

    # Scan nodes
    SEQ_SCAN = "Seq Scan"
    PARALLEL_SEQ_SCAN = "Parallel Seq Scan"
    INDEX_SCAN = "Index Scan"
    INDEX_ONLY_SCAN = "Index Only Scan"
    BITMAP_HEAP_SCAN = "Bitmap Heap Scan"
    BITMAP_INDEX_SCAN = "Bitmap Index Scan"
    SUBQUERY_SCAN = "Subquery Scan"
    CTE_SCAN = "CTE Scan"

    # Join nodes
    NESTED_LOOP = "Nested Loop"
    HASH_JOIN = "Hash Join"
    MERGE_JOIN = "Merge Join"

    # Materialization nodes
    HASH = "Hash"
    SORT = "Sort"
    INCREMENTAL_SORT = "Incremental Sort"
    AGGREGATE = "Aggregate"
    HASH_AGGREGATE = "HashAggregate"
    GROUP_AGGREGATE = "GroupAggregate"
    UNIQUE = "Unique"
    LIMIT = "Limit"
    MATERIALIZE = "Materialize"

    # Parallel control nodes
    GATHER = "Gather"
    GATHER_MERGE = "Gather Merge"


class CostRange(BaseModel):
    """A (startup, total) pair, used for planner costs and actual times."""

    model_config = ConfigDict(frozen=True)

    startup: float
    total: float


class BufferStats(BaseModel):
    """
    Block counts from a ``Buffers:`` line (EXPLAIN with BUFFERS).

    Only the counters printed on the line are set.
    """

    model_config = ConfigDict(frozen=True)

    shared_hit: int | None = None
    shared_read: int | None = None
    shared_dirtied: int | None = None
    shared_written: int | None = None
    local_hit: int | None = None
    local_read: int | None = None
    local_dirtied: int | None = None
    local_written: int | None = None
    temp_read: int | None = None
    temp_written: int | None = None


class PlanNode(BaseModel):
    """
    Represents a single node in the query execution plan.

    This is a recursive structure - each node owns its child nodes in the
    `children` field. The tree represents the execution order (leaves
    execute first, results flow up to the root).

    Fields are divided into:
    - Identity: operation kind and the header text it was resolved from
    - Planner estimates: present whenever the header carried a cost annotation
    - EXPLAIN ANALYZE fields: only present when ANALYZE was used
    - Property lines: filters, conditions, keys, workers, buffers
    """

    # =========================================================================
    # Identity
    # =========================================================================

    operation_kind: str = Field(
        ...,
        description="Canonical operation tag (e.g., 'Seq Scan') or the header text",
    )

    raw_header: str = Field(
        ...,
        description="The header line exactly as it appeared in the input",
    )

    header: str = Field(
        default="",
        description="Header text without the branch arrow and cost annotations",
    )

    table_name: str | None = Field(default=None, description="Table for scan nodes")
    index_name: str | None = Field(default=None, description="Index for index scans")
    alias: str | None = Field(default=None, description="Table alias used in the query")

    # =========================================================================
    # Planner estimates
    # =========================================================================

    estimated_cost: CostRange | None = Field(
        default=None,
        description="Estimated startup and total cost",
    )

    estimated_rows: int | None = Field(
        default=None,
        description="Estimated number of rows to be returned",
    )

    row_width: int | None = Field(
        default=None,
        description="Estimated average width of rows in bytes",
    )

    # =========================================================================
    # EXPLAIN ANALYZE fields
    # =========================================================================

    actual_time: CostRange | None = Field(
        default=None,
        description="Actual startup and total time in ms (per loop)",
    )

    actual_rows: int | float | None = Field(
        default=None,
        description="Actual rows returned (per loop)",
    )

    loops: int | None = Field(
        default=None,
        description="Number of times this node was executed",
    )

    # =========================================================================
    # Property lines
    # =========================================================================

    filter: str | None = Field(default=None, description="Filter condition")
    index_condition: str | None = Field(default=None, description="Index lookup condition")
    join_condition: str | None = Field(default=None, description="Join filter or merge condition")
    hash_condition: str | None = Field(default=None, description="Hash join condition")
    recheck_condition: str | None = Field(default=None, description="Bitmap recheck condition")

    sort_keys: list[str] | None = Field(default=None, description="Sort key expressions")
    group_keys: list[str] | None = Field(default=None, description="Group key expressions")

    sort_method: str | None = Field(default=None, description="Sort algorithm used")
    memory_usage: str | None = Field(default=None, description="Memory used, e.g. '25kB'")
    disk_usage: str | None = Field(default=None, description="Disk used by a spilled sort")

    hash_buckets: int | None = Field(default=None, description="Number of hash buckets")
    hash_batches: int | None = Field(
        default=None,
        description="Number of hash batches (>1 means spilled to disk)",
    )

    rows_removed_by_filter: int | None = Field(
        default=None,
        description="Rows removed by the filter (per loop)",
    )

    worker_count: int | None = Field(default=None, description="Parallel workers planned")
    workers_launched: int | None = Field(default=None, description="Parallel workers launched")

    buffer_stats: BufferStats | None = Field(default=None, description="Buffer usage")

    # =========================================================================
    # Child nodes
    # =========================================================================

    children: list[PlanNode] = Field(
        default_factory=list,
        description="Child plan nodes",
    )

    # =========================================================================
    # Computed properties
    # =========================================================================

    @property
    def kind(self) -> OperationKind | None:
        """The operation kind as an enum member, or None for unrecognized headers."""
        try:
            return OperationKind(self.operation_kind)
        except ValueError:
            return None

    @property
    def is_parallel(self) -> bool:
        """Check if the header marks this node as parallel-aware."""
        return self.header.startswith("Parallel ")

    @property
    def has_analyze_data(self) -> bool:
        """Check if EXPLAIN ANALYZE data is present."""
        return self.actual_rows is not None

    @property
    def total_cost(self) -> float | None:
        """Estimated total cost, if the header carried one."""
        return self.estimated_cost.total if self.estimated_cost else None

    @property
    def node_count(self) -> int:
        """Number of nodes in the subtree rooted here."""
        return 1 + sum(child.node_count for child in self.children)

    @property
    def depth(self) -> int:
        """Height of the subtree rooted here (a leaf has depth 1)."""
        return 1 + max((child.depth for child in self.children), default=0)

    def iter_nodes(self) -> Iterator[PlanNode]:
        """Iterate through all nodes in the plan tree (parents before children)."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def iter_post_order(self) -> Iterator[PlanNode]:
        """
        Iterate children before parents.

        This is the order in which the executor produces rows, so it is the
        order the narrative numbers its steps in.
        """
        for child in self.children:
            yield from child.iter_post_order()
        yield self


class ParseResult(BaseModel):
    """
    Outcome of parsing one EXPLAIN text.

    Exactly one of `root` and `error` is meaningful: a successful parse has
    a root and no error, a failed one has no root and a non-empty error.
    """

    database_type: DatabaseType = Field(
        default=DatabaseType.POSTGRESQL,
        description="Dialect the text was parsed as",
    )

    root: PlanNode | None = Field(
        default=None,
        description="Root node of the execution plan tree",
    )

    planning_time_ms: float | None = Field(
        default=None,
        description="Time spent planning the query in milliseconds",
    )

    execution_time_ms: float | None = Field(
        default=None,
        description="Total execution time in milliseconds (ANALYZE only)",
    )

    error: str | None = Field(
        default=None,
        description="Why parsing failed, when it did",
    )

    @property
    def ok(self) -> bool:
        """True when a plan tree was recovered."""
        return self.root is not None and self.error is None

    @property
    def has_analyze_data(self) -> bool:
        """Check if EXPLAIN ANALYZE data is present."""
        if self.execution_time_ms is not None:
            return True
        return self.root is not None and self.root.has_analyze_data

    @property
    def all_nodes(self) -> list[PlanNode]:
        """Get all nodes in the plan tree as a flat list."""
        if self.root is None:
            return []
        return list(self.root.iter_nodes())

    def find_nodes_by_kind(self, kind: OperationKind | str) -> list[PlanNode]:
        """Find all nodes with the given operation kind."""
        value = kind.value if isinstance(kind, OperationKind) else kind
        return [n for n in self.all_nodes if n.operation_kind == value]
