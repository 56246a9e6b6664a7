"""
Cosmetic helpers for turning plan fragments into prose.

Predicates are treated as opaque text: casts, redundant parentheses and
runs of whitespace are cleaned up, and column names are picked out with a
few regexes. Nothing here tries to understand the expression language.
"""

from __future__ import annotations

import re

_CAST = re.compile(
    r"::(?:\"[^\"]+\"|[A-Za-z_]\w*)"
    r"(?:\s+(?:varying|precision|with(?:out)?\s+time\s+zone))?"
    r"(?:\[\])*"
)
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
_WHITESPACE = re.compile(r"\s+")

_IDENT = r"[A-Za-z_]\w*"
_COLUMN_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\b({_IDENT}\.{_IDENT})\b"),
    re.compile(rf"\b({_IDENT})\)*\s*(?=[<>=!@~])"),
    re.compile(rf"\b({_IDENT})\)*\s+(?=IS\s)", re.IGNORECASE),
    re.compile(rf"\b({_IDENT})\)*\s+(?=(?:NOT\s+)?(?:IN|LIKE|ILIKE|BETWEEN)\s)", re.IGNORECASE),
]
_NOT_COLUMNS = {"null", "true", "false", "and", "or", "not", "is", "any", "all", "in"}


def format_number(num: int | float | None) -> str:
    """
    Abbreviate a row count: 950 -> "950", 12_345 -> "12.3K", 2_500_000 -> "2.5M".

    None renders as "0".
    """
    if num is None:
        return "0"
    if num < 1_000:
        if isinstance(num, float) and num.is_integer():
            num = int(num)
        return str(num)
    if num < 1_000_000:
        return f"{num / 1_000:.1f}K"
    return f"{num / 1_000_000:.1f}M"


def pluralize_rows(num: int | float | None) -> str:
    """Format a row count with "row" or "rows"."""
    return f"{format_number(num)} row{'' if num == 1 else 's'}"


def _strip_outer_parens(text: str) -> str:
    """Drop parentheses that wrap the entire expression."""
    while text.startswith("(") and text.endswith(")"):
        depth = 0
        for i, char in enumerate(text):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            if depth == 0 and i < len(text) - 1:
                return text
        text = text[1:-1].strip()
    return text


def strip_casts(text: str) -> str:
    """Remove type casts such as ``::text`` or ``::timestamp without time zone``."""
    return _CAST.sub("", text)


def format_condition(condition: str) -> str:
    """
    Clean up an index, join or hash condition for display.

    Example:
        "((o.id = c.order_id))" -> "o.id = c.order_id"
        "(created_at > '2024-01-01'::date)" -> "created_at > '2024-01-01'"
    """
    text = condition.replace("(((", "(").replace(")))", ")")
    text = strip_casts(text)
    text = _WHITESPACE.sub(" ", text).strip()
    return _strip_outer_parens(text)


def format_filter(filter_text: str) -> str:
    """Clean up a filter predicate for display."""
    return format_condition(filter_text)


_DIRECTIONS = {"DESC": "descending", "ASC": "ascending"}
_NULLS_ORDER = re.compile(r"\s+NULLS (FIRST|LAST)$")


def format_sort_keys(sort_keys: list[str]) -> str:
    """
    Describe sort keys with their direction.

    "priority DESC" -> "priority (descending)". Only the trailing words are
    read, so expression keys such as "coalesce(a, b)" stay whole. Keys
    without a direction are listed as-is.
    """
    described: list[str] = []
    for key in sort_keys:
        column = key.strip()
        if not column:
            continue

        qualifiers: list[str] = []
        nulls = _NULLS_ORDER.search(column)
        if nulls:
            column = column[: nulls.start()].rstrip()

        rest, _, direction = column.rpartition(" ")
        if rest and direction in _DIRECTIONS:
            column = rest.rstrip()
            qualifiers.append(_DIRECTIONS[direction])
        if nulls:
            qualifiers.append(f"nulls {nulls.group(1).lower()}")

        if qualifiers:
            described.append(f"{column} ({', '.join(qualifiers)})")
        else:
            described.append(column)
    return ", ".join(described)


def format_group_keys(group_keys: list[str]) -> str:
    return ", ".join(group_keys)


def extract_filter_columns(filter_text: str) -> str:
    """
    Guess which columns a predicate tests.

    Looks for qualified names (``o.status``), names compared with an
    operator, and names tested with IS / IN / LIKE / BETWEEN. String
    literals and casts are removed first so their contents are never
    reported. A bare name is dropped when a qualified name already covers it.

    Returns:
        Comma-separated column names in first-seen order (may be empty)
    """
    text = _STRING_LITERAL.sub("''", filter_text)
    text = strip_casts(text)

    found: dict[str, None] = {}
    for pattern in _COLUMN_PATTERNS:
        for name in pattern.findall(text):
            if name.lower() in _NOT_COLUMNS:
                continue
            found.setdefault(name, None)

    qualified_tails = {name.split(".", 1)[1] for name in found if "." in name}
    columns = [
        name for name in found
        if "." in name or name not in qualified_tails
    ]
    return ", ".join(columns)


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]
