"""
Tests for header and property field extraction.
"""

from __future__ import annotations

from plansense.parser.fields import (
    apply_property,
    extract_header_fields,
    parse_buffers,
    split_keys,
    strip_branch_arrow,
)
from plansense.parser.models import CostRange, PlanNode


def _node() -> PlanNode:
    return PlanNode(operation_kind="Sort", raw_header="Sort")


# =============================================================================
# Header shapes
# =============================================================================

class TestExtractHeaderFields:
    """Test the ordered header shape patterns."""

    def test_estimate_only(self) -> None:
        fields = extract_header_fields("Seq Scan on orders  (cost=0.00..100.00 rows=5000 width=50)")

        assert fields["header"] == "Seq Scan on orders"
        assert fields["estimated_cost"] == CostRange(startup=0.0, total=100.0)
        assert fields["estimated_rows"] == 5000
        assert fields["row_width"] == 50
        assert "actual_rows" not in fields

    def test_analyze(self) -> None:
        fields = extract_header_fields(
            "->  Hash Join  (cost=30.50..95.25 rows=1000 width=72) "
            "(actual time=0.512..3.201 rows=120 loops=1)"
        )

        assert fields["header"] == "Hash Join"
        assert fields["estimated_cost"].total == 95.25
        assert fields["actual_time"] == CostRange(startup=0.512, total=3.201)
        assert fields["actual_rows"] == 120
        assert isinstance(fields["actual_rows"], int)
        assert fields["loops"] == 1

    def test_analyze_fractional_rows(self) -> None:
        """PostgreSQL 18 prints per-loop row averages with decimals."""
        fields = extract_header_fields(
            "Index Scan using t_pkey on t  (cost=0.29..8.31 rows=1 width=4) "
            "(actual time=0.010..0.011 rows=0.50 loops=4)"
        )
        assert fields["actual_rows"] == 0.5
        assert fields["loops"] == 4

    def test_analyze_without_timing(self) -> None:
        fields = extract_header_fields(
            "Seq Scan on t  (cost=0.00..35.50 rows=2550 width=4) (actual rows=2550 loops=1)"
        )
        assert fields["actual_rows"] == 2550
        assert fields["loops"] == 1
        assert "actual_time" not in fields

    def test_never_executed(self) -> None:
        fields = extract_header_fields(
            "->  Index Scan using idx on orders  (cost=0.29..8.31 rows=1 width=4) (never executed)"
        )
        assert fields["header"] == "Index Scan using idx on orders"
        assert fields["estimated_cost"].total == 8.31
        assert fields["actual_rows"] == 0
        assert fields["loops"] == 0

    def test_costs_off(self) -> None:
        assert extract_header_fields("->  Seq Scan on users") == {"header": "Seq Scan on users"}

    def test_analyze_with_costs_off(self) -> None:
        fields = extract_header_fields(
            "->  Seq Scan on users u (actual time=0.015..2.310 rows=870 loops=1)"
        )
        assert fields["header"] == "Seq Scan on users u"
        assert fields["actual_time"].total == 2.31
        assert fields["actual_rows"] == 870
        assert fields["loops"] == 1
        assert "estimated_cost" not in fields
        assert "estimated_rows" not in fields

    def test_analyze_with_costs_and_timing_off(self) -> None:
        fields = extract_header_fields("Sort (actual rows=12 loops=3)")
        assert fields == {"header": "Sort", "actual_rows": 12, "loops": 3}

    def test_unknown_annotation_is_cut_from_header(self) -> None:
        fields = extract_header_fields("Result  (cost=0.00..0.01 rows=1 width=4) (something new)")
        assert fields == {"header": "Result"}

    def test_strip_branch_arrow(self) -> None:
        assert strip_branch_arrow("->  Sort") == "Sort"
        assert strip_branch_arrow("Sort") == "Sort"


# =============================================================================
# Property lines
# =============================================================================

class TestSplitKeys:
    """Test top-level comma splitting of key lists."""

    def test_simple(self) -> None:
        assert split_keys("a, b DESC, c") == ["a", "b DESC", "c"]

    def test_commas_inside_parentheses(self) -> None:
        assert split_keys("coalesce(a, b), c") == ["coalesce(a, b)", "c"]

    def test_commas_inside_quotes(self) -> None:
        assert split_keys("(x || ', '), y") == ["(x || ', ')", "y"]


class TestParseBuffers:
    """Test Buffers line parsing."""

    def test_shared_and_temp(self) -> None:
        stats = parse_buffers("shared hit=120 read=8000, temp read=4400 written=4410")

        assert stats is not None
        assert stats.shared_hit == 120
        assert stats.shared_read == 8000
        assert stats.temp_read == 4400
        assert stats.temp_written == 4410
        assert stats.local_hit is None

    def test_nothing_recognized(self) -> None:
        assert parse_buffers("whatever") is None


class TestApplyProperty:
    """Test property line extraction onto a node."""

    def test_sort_key(self) -> None:
        node = _node()
        assert apply_property("Sort Key: priority DESC, (lower(name))", node)
        assert node.sort_keys == ["priority DESC", "(lower(name))"]

    def test_group_key(self) -> None:
        node = _node()
        apply_property("Group Key: customer_id, region", node)
        assert node.group_keys == ["customer_id", "region"]

    def test_conditions(self) -> None:
        node = _node()
        apply_property("Filter: (amount > 100)", node)
        apply_property("Index Cond: (id = 42)", node)
        apply_property("Hash Cond: (o.customer_id = c.id)", node)
        apply_property("Recheck Cond: (status = 'open'::text)", node)

        assert node.filter == "(amount > 100)"
        assert node.index_condition == "(id = 42)"
        assert node.hash_condition == "(o.customer_id = c.id)"
        assert node.recheck_condition == "(status = 'open'::text)"

    def test_join_filter_and_merge_cond_share_a_field(self) -> None:
        node = _node()
        apply_property("Merge Cond: (a.id = b.a_id)", node)
        assert node.join_condition == "(a.id = b.a_id)"

        node = _node()
        apply_property("Join Filter: (a.x < b.y)", node)
        assert node.join_condition == "(a.x < b.y)"

    def test_workers(self) -> None:
        node = _node()
        apply_property("Workers Planned: 2", node)
        apply_property("Workers Launched: 1", node)
        assert node.worker_count == 2
        assert node.workers_launched == 1

    def test_sort_method_memory(self) -> None:
        node = _node()
        apply_property("Sort Method: quicksort  Memory: 25kB", node)
        assert node.sort_method == "quicksort"
        assert node.memory_usage == "25kB"
        assert node.disk_usage is None

    def test_sort_method_disk(self) -> None:
        node = _node()
        apply_property("Sort Method: external merge  Disk: 35200kB", node)
        assert node.sort_method == "external merge"
        assert node.disk_usage == "35200kB"

    def test_hash_buckets(self) -> None:
        node = _node()
        apply_property("Buckets: 1024  Batches: 2  Memory Usage: 72kB", node)
        assert node.hash_buckets == 1024
        assert node.hash_batches == 2
        assert node.memory_usage == "72kB"

    def test_rows_removed(self) -> None:
        node = _node()
        apply_property("Rows Removed by Filter: 25", node)
        assert node.rows_removed_by_filter == 25

    def test_buffers(self) -> None:
        node = _node()
        apply_property("Buffers: shared hit=12 read=3", node)
        assert node.buffer_stats is not None
        assert node.buffer_stats.shared_read == 3

    def test_unknown_property_leaves_node_untouched(self) -> None:
        node = _node()
        assert not apply_property("Heap Fetches: 0", node)
        assert node == _node()
