"""
Line preprocessing and classification for EXPLAIN text.

EXPLAIN's text format encodes the plan tree purely through indentation:
a node header line ("->  Hash Join  (cost=...)") is followed by its
property lines ("Hash Cond: ..."), then by its children, indented further.
This module turns raw text into a list of indentation-tagged lines and
decides, line by line, whether a line opens a new node or annotates the
current one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

TAB_WIDTH = 4

# Summary lines printed after the plan tree. Timings are pulled out of the
# raw text separately, so these never reach the tree builder.
SUMMARY_PREFIXES: tuple[str, ...] = (
    "Planning Time:",
    "Execution Time:",
    "Planning:",
    "Total runtime:",
    "JIT:",
    "Trigger ",
)

# Labeled attribute lines. Checked before any node heuristic, so that
# "Hash Cond: ..." or "Sort Key: ..." is never mistaken for a Hash or Sort
# node.
PROPERTY_PREFIXES: tuple[str, ...] = (
    "Sort Key:",
    "Group Key:",
    "Filter:",
    "Index Cond:",
    "Join Filter:",
    "Hash Cond:",
    "Workers Planned:",
    "Workers Launched:",
    "Buffers:",
    "Rows Removed by",
    "Sort Method:",
    "Merge Cond:",
    "Recheck Cond:",
    "Heap Fetches:",
    "Heap Blocks:",
    "Output:",
    "Buckets:",
    "Presorted Key:",
    "Full-sort Groups:",
    "Pre-sorted Groups:",
    "Cache Key:",
    "Cache Mode:",
    "Hits:",
    "Peak Memory",
    "Index Searches:",
    "Storage:",
    "One-Time Filter:",
    "I/O Timings:",
    "Disabled:",
    "Group Keys:",
    "Sort Keys:",
    "Batches:",
    "Memory Usage:",
    "Relations:",
    "Remote SQL:",
)

_WORKER_LINE = re.compile(r"^Worker \d+:")

NODE_MARKERS: tuple[str, ...] = ("(cost=", "(never executed)")

BRANCH_ARROW = "->"

# Operation names that can open a node even without a cost annotation
# (EXPLAIN (COSTS OFF)).
_OPERATION_NAME = re.compile(
    r"^(?:"
    r"Seq Scan|Index|Bitmap|Tid (?:Range )?Scan|Nested Loop|Merge|Hash|"
    r"Aggregate|Group|GroupAggregate|HashAggregate|MixedAggregate|Unique|"
    r"Subquery Scan|CTE Scan|Foreign Scan|Custom Scan|Function Scan|"
    r"Values Scan|WorkTable Scan|Named Tuplestore Scan|Table Function Scan|"
    r"Gather|Parallel|Sort|Incremental Sort|Limit|Materialize|Memoize|"
    r"Result|ProjectSet|Append|MergeAppend|Recursive Union|WindowAgg|"
    r"SetOp|HashSetOp|LockRows|BitmapAnd|BitmapOr|Finalize|Partial|"
    r"(?:Insert|Update|Delete) on"
    r")(?=\s|\(|$)"
)


class LineKind(str, Enum):
    """Role of a line within the plan text."""

    NODE = "node"
    PROPERTY = "property"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ParserLine:
    """
    One non-blank line of plan text.

    Attributes:
        indent: Indentation depth (space = 1, tab = 4)
        content: The line with surrounding whitespace removed
        raw: The line exactly as it appeared in the input
    """

    indent: int
    content: str
    raw: str


def measure_indent(line: str) -> int:
    """Count leading whitespace, with tabs worth TAB_WIDTH spaces."""
    indent = 0
    for char in line:
        if char == " ":
            indent += 1
        elif char == "\t":
            indent += TAB_WIDTH
        else:
            break
    return indent


def is_summary_line(content: str) -> bool:
    """Check if a stripped line is one of the trailing summary banners."""
    return content.startswith(SUMMARY_PREFIXES)


def preprocess(text: str) -> list[ParserLine]:
    """
    Split EXPLAIN text into indentation-tagged lines.

    Blank lines and trailing summary banners are dropped, together with
    anything indented under a banner (the "Planning:" block carries its own
    Buffers line, which must not land on the last plan node). psql's
    "QUERY PLAN" column header and its dashed underline are dropped too,
    along with the "(N rows)" footer, so a plan pasted straight from a
    psql session parses the same as a bare one.

    Args:
        text: Raw EXPLAIN output

    Returns:
        Lines in document order; empty for empty input
    """
    lines: list[ParserLine] = []
    banner_indent: int | None = None

    for raw in text.splitlines():
        content = raw.strip()
        if not content:
            continue
        indent = measure_indent(raw)
        if banner_indent is not None and indent > banner_indent:
            continue
        banner_indent = None
        if is_summary_line(content):
            banner_indent = indent
            continue
        if _is_psql_decoration(content):
            continue
        lines.append(ParserLine(indent=indent, content=content, raw=raw))

    return lines


def _is_psql_decoration(content: str) -> bool:
    if content == "QUERY PLAN":
        return True
    if set(content) == {"-"}:
        return True
    return re.fullmatch(r"\(\d+ rows?\)", content) is not None


def is_property_line(content: str) -> bool:
    """Check if a stripped line is a labeled attribute of the current node."""
    return content.startswith(PROPERTY_PREFIXES) or _WORKER_LINE.match(content) is not None


def is_node_line(content: str) -> bool:
    """
    Check if a stripped line opens a new plan node.

    Property lines are never nodes, whatever else they contain.
    """
    if is_property_line(content):
        return False
    if any(marker in content for marker in NODE_MARKERS):
        return True
    if content.startswith(BRANCH_ARROW):
        return True
    return _OPERATION_NAME.match(content) is not None


def classify_line(content: str) -> LineKind:
    """
    Decide whether a stripped line is a node header, a property, or neither.

    Args:
        content: A line with surrounding whitespace removed

    Returns:
        LineKind.PROPERTY for labeled attribute lines, LineKind.NODE for
        node headers, LineKind.UNRECOGNIZED for anything else
    """
    if is_property_line(content):
        return LineKind.PROPERTY
    if is_node_line(content):
        return LineKind.NODE
    return LineKind.UNRECOGNIZED
