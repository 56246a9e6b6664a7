"""
Parser for PostgreSQL EXPLAIN text output.

This module handles:
- Rebuilding the plan tree from indentation
- Attaching property lines to the node they annotate
- Extracting planning and execution timings
- Enforcing resource limits on pathological inputs

Error handling philosophy: be tolerant of lines we don't understand (the
text format drifts between server versions and verbosity settings), and
fail only when no plan node can be recognized at all. That failure is
reported through ParseResult.error, never raised to the caller.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from plansense.exceptions import ParseError
from plansense.parser.config import DEFAULT_CONFIG, ParserConfig
from plansense.parser.fields import apply_property, extract_header_fields
from plansense.parser.lines import LineKind, ParserLine, classify_line, preprocess
from plansense.parser.models import DatabaseType, ParseResult, PlanNode
from plansense.parser.resolver import resolve_tree

logger = logging.getLogger(__name__)

_PLANNING_TIME = re.compile(r"Planning Time:\s*(\d+\.?\d*)\s*ms")
_EXECUTION_TIME = re.compile(r"Execution Time:\s*(\d+\.?\d*)\s*ms")
# Servers before 9.4 print "Total runtime" instead of "Execution Time".
_TOTAL_RUNTIME = re.compile(r"Total runtime:\s*(\d+\.?\d*)\s*ms")


def parse_explain_text(
    text: str,
    config: ParserConfig | None = None,
) -> ParseResult:
    """
    Parse PostgreSQL EXPLAIN (or EXPLAIN ANALYZE) text into a plan tree.

    Args:
        text: The explainer output, verbatim
        config: Parser configuration with resource limits. If None,
            uses DEFAULT_CONFIG.

    Returns:
        ParseResult with a root node, or with `error` set when the text
        contains no recognizable plan node

    Example:
        >>> result = parse_explain_text(
        ...     "Seq Scan on orders  (cost=0.00..100.00 rows=5000 width=50)"
        ... )
        >>> result.root.operation_kind, result.root.table_name
        ('Seq Scan', 'orders')
    """
    config = config or DEFAULT_CONFIG

    if not text.strip():
        return ParseResult(
            database_type=DatabaseType.POSTGRESQL,
            error="Empty input - no EXPLAIN output found",
        )

    try:
        _check_input_size(text, config)
        root = build_tree(preprocess(text), config)
    except ParseError as e:
        logger.debug("Parse failed (%s): %s", e.source, e.message)
        return ParseResult(database_type=DatabaseType.POSTGRESQL, error=str(e))

    planning_time, execution_time = extract_timings(text)

    return ParseResult(
        database_type=DatabaseType.POSTGRESQL,
        root=root,
        planning_time_ms=planning_time,
        execution_time_ms=execution_time,
    )


def parse_explain_file(path: str | Path, config: ParserConfig | None = None) -> ParseResult:
    """
    Parse EXPLAIN text from a file.

    Convenience wrapper around parse_explain_text() for file inputs.

    Raises:
        ParseError: If the file cannot be read
    """
    filepath = Path(path)

    if not filepath.exists():
        raise ParseError(f"File not found: {filepath}", source="file_read")

    if not filepath.is_file():
        raise ParseError(f"Path is not a file: {filepath}", source="file_read")

    try:
        content = filepath.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(
            f"Cannot read file: {filepath}",
            detail=str(e),
            source="file_read",
        ) from e

    return parse_explain_text(content, config)


def build_tree(lines: list[ParserLine], config: ParserConfig | None = None) -> PlanNode:
    """
    Rebuild the plan tree from indentation-tagged lines.

    Keeps a stack of open (node, indent) pairs. A node header closes every
    open node indented at least as far as itself, then becomes the last
    child of whatever is left on top. Property lines annotate the node on
    top of the stack; their own indentation never affects the shape.

    Args:
        lines: Output of preprocess()
        config: Resource limits

    Returns:
        The root node, with every node resolved

    Raises:
        ParseError: If no node header is found, or a resource limit is hit
    """
    config = config or DEFAULT_CONFIG

    stack: list[tuple[PlanNode, int]] = []
    root: PlanNode | None = None
    node_count = 0

    for line in lines:
        kind = classify_line(line.content)

        if kind is LineKind.PROPERTY:
            if stack:
                apply_property(line.content, stack[-1][0])
            else:
                logger.debug("Property line before any node: %r", line.content)
            continue

        if kind is LineKind.UNRECOGNIZED:
            logger.debug("Skipping unrecognized line: %r", line.content)
            continue

        node = _build_node(line)
        node_count += 1
        if node_count > config.max_nodes:
            raise ParseError(
                f"Plan too large: more than {config.max_nodes:,} nodes",
                detail="Consider explaining a simpler query or increasing max_nodes",
                source="resource_limit",
            )

        while stack and stack[-1][1] >= line.indent:
            stack.pop()

        if stack:
            stack[-1][0].children.append(node)
        elif root is None:
            root = node
        else:
            logger.debug("Node outside the root's subtree ignored: %r", line.content)

        stack.append((node, line.indent))

        if len(stack) > config.max_depth:
            raise ParseError(
                f"Plan too deeply nested: depth {len(stack)} (max {config.max_depth})",
                detail="This may indicate corrupted EXPLAIN output",
                source="resource_limit",
            )

    if root is None:
        raise ParseError(
            "No plan nodes found - this doesn't look like EXPLAIN output",
            detail="Expected lines such as 'Seq Scan on t  (cost=0.00..1.00 rows=1 width=4)'",
            source="structure",
        )

    resolve_tree(root)
    logger.debug("Built plan tree: %d nodes, depth %d", root.node_count, root.depth)
    return root


def _build_node(line: ParserLine) -> PlanNode:
    fields = extract_header_fields(line.content)
    return PlanNode(
        operation_kind=fields["header"],
        raw_header=line.raw,
        **fields,
    )


def extract_timings(text: str) -> tuple[float | None, float | None]:
    """
    Pull planning and execution time (ms) from the raw text.

    Independent of tree structure: works on any text containing the
    summary lines.
    """
    planning = _PLANNING_TIME.search(text)
    execution = _EXECUTION_TIME.search(text) or _TOTAL_RUNTIME.search(text)

    return (
        float(planning.group(1)) if planning else None,
        float(execution.group(1)) if execution else None,
    )


def _check_input_size(text: str, config: ParserConfig) -> None:
    if len(text) > config.max_input_chars:
        raise ParseError(
            f"Input too large: {len(text):,} characters (max {config.max_input_chars:,})",
            detail="Paste a smaller EXPLAIN output or increase max_input_chars in config",
            source="resource_limit",
        )
