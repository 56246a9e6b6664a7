"""
Tests for table, index and operation resolution.
"""

from __future__ import annotations

import pytest

from plansense.parser.models import OperationKind, PlanNode
from plansense.parser.resolver import (
    resolve_index,
    resolve_node,
    resolve_operation_kind,
    resolve_table,
)


class TestResolveOperationKind:
    """Ordered operation patterns, most specific first."""

    @pytest.mark.parametrize(
        ("header", "kind"),
        [
            ("Seq Scan on orders", OperationKind.SEQ_SCAN),
            ("Parallel Seq Scan on orders", OperationKind.PARALLEL_SEQ_SCAN),
            ("Index Scan using orders_pkey on orders", OperationKind.INDEX_SCAN),
            ("Index Scan Backward using orders_pkey on orders", OperationKind.INDEX_SCAN),
            ("Index Only Scan using orders_pkey on orders", OperationKind.INDEX_ONLY_SCAN),
            ("Bitmap Heap Scan on orders", OperationKind.BITMAP_HEAP_SCAN),
            ("Bitmap Index Scan on orders_status_idx", OperationKind.BITMAP_INDEX_SCAN),
            ("Subquery Scan on recent", OperationKind.SUBQUERY_SCAN),
            ("CTE Scan on recent_orders", OperationKind.CTE_SCAN),
            ("Nested Loop Left Join", OperationKind.NESTED_LOOP),
            ("Hash Join", OperationKind.HASH_JOIN),
            ("Hash Left Join", OperationKind.HASH_JOIN),
            ("Parallel Hash Join", OperationKind.HASH_JOIN),
            ("Merge Join", OperationKind.MERGE_JOIN),
            ("Merge Anti Join", OperationKind.MERGE_JOIN),
            ("Hash", OperationKind.HASH),
            ("Parallel Hash", OperationKind.HASH),
            ("Sort", OperationKind.SORT),
            ("Incremental Sort", OperationKind.INCREMENTAL_SORT),
            ("Aggregate", OperationKind.AGGREGATE),
            ("Finalize Aggregate", OperationKind.AGGREGATE),
            ("HashAggregate", OperationKind.HASH_AGGREGATE),
            ("Partial HashAggregate", OperationKind.HASH_AGGREGATE),
            ("GroupAggregate", OperationKind.GROUP_AGGREGATE),
            ("Unique", OperationKind.UNIQUE),
            ("Limit", OperationKind.LIMIT),
            ("Gather", OperationKind.GATHER),
            ("Gather Merge", OperationKind.GATHER_MERGE),
            ("Materialize", OperationKind.MATERIALIZE),
        ],
    )
    def test_known_operations(self, header: str, kind: OperationKind) -> None:
        assert resolve_operation_kind(header) == kind.value

    def test_unknown_operation_keeps_header(self) -> None:
        assert resolve_operation_kind("Function Scan on generate_series g") == (
            "Function Scan on generate_series g"
        )


class TestResolveTable:
    """Table and alias extraction."""

    def test_plain_table(self) -> None:
        assert resolve_table("Seq Scan on orders") == ("orders", None)

    def test_alias(self) -> None:
        assert resolve_table("Seq Scan on orders o") == ("orders", "o")

    def test_schema_qualified(self) -> None:
        assert resolve_table("Seq Scan on public.orders") == ("public.orders", None)

    def test_index_scan_table(self) -> None:
        assert resolve_table("Index Scan using orders_pkey on orders") == ("orders", None)

    def test_bitmap_index_scan_names_an_index_not_a_table(self) -> None:
        assert resolve_table("Bitmap Index Scan on orders_status_idx") == (None, None)

    def test_no_table(self) -> None:
        assert resolve_table("Hash Join") == (None, None)


class TestResolveIndex:
    """Index name extraction."""

    def test_index_scan(self) -> None:
        assert resolve_index("Index Scan using orders_pkey on orders") == "orders_pkey"

    def test_backward_index_scan(self) -> None:
        assert resolve_index("Index Scan Backward using orders_created_idx on orders") == (
            "orders_created_idx"
        )

    def test_index_only_scan(self) -> None:
        assert resolve_index("Index Only Scan using t_pkey on t") == "t_pkey"

    def test_bitmap_index_scan(self) -> None:
        assert resolve_index("Bitmap Index Scan on orders_status_idx") == "orders_status_idx"

    def test_no_index(self) -> None:
        assert resolve_index("Seq Scan on orders") is None


def test_resolve_node_fills_every_field() -> None:
    node = PlanNode(
        operation_kind="Index Scan using orders_pkey on orders o",
        raw_header="->  Index Scan using orders_pkey on orders o  (cost=0.29..8.31 rows=1 width=4)",
        header="Index Scan using orders_pkey on orders o",
    )
    resolve_node(node)

    assert node.kind is OperationKind.INDEX_SCAN
    assert node.table_name == "orders"
    assert node.alias == "o"
    assert node.index_name == "orders_pkey"
