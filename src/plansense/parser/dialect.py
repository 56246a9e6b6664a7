"""
Dialect detection and routing.

Looks for signature substrings in the raw text and hands it to the parser
for that database. Only PostgreSQL has a parser; MySQL output is
recognized so the caller gets a clear "not supported yet" message instead
of a confusing "no plan nodes found".
"""

from __future__ import annotations

import logging

from plansense.exceptions import UnsupportedDialectError
from plansense.parser.config import ParserConfig
from plansense.parser.models import DatabaseType, ParseResult
from plansense.parser.parser import parse_explain_text

logger = logging.getLogger(__name__)

POSTGRES_MARKERS: tuple[str, ...] = (
    "->",
    "cost=",
    "rows=",
    "Planning Time:",
    "Execution Time:",
)

MYSQL_MARKERS: tuple[str, ...] = (
    "table:",
    "type:",
    "possible_keys:",
    "key:",
    "ref:",
    "Extra:",
)


def detect_database_type(text: str) -> DatabaseType:
    """
    Guess which database produced an EXPLAIN text.

    PostgreSQL markers are checked first, so a PostgreSQL plan whose
    filter happens to mention "key:" is still routed correctly.
    """
    if any(marker in text for marker in POSTGRES_MARKERS):
        return DatabaseType.POSTGRESQL
    if any(marker in text for marker in MYSQL_MARKERS):
        return DatabaseType.MYSQL
    return DatabaseType.UNKNOWN


class MySQLExplainParser:
    """
    Placeholder for a MySQL EXPLAIN parser.

    Not implemented yet: parse() always raises UnsupportedDialectError.
    """

    database_type = DatabaseType.MYSQL

    def parse(self, text: str) -> ParseResult:
        raise UnsupportedDialectError(
            "MySQL parsing is not yet implemented",
            database=self.database_type.value,
        )


def parse(
    text: str,
    database: DatabaseType = DatabaseType.UNKNOWN,
    config: ParserConfig | None = None,
) -> ParseResult:
    """
    Parse EXPLAIN text, detecting the dialect unless one is given.

    Args:
        text: The explainer output, verbatim
        database: Dialect to parse as. UNKNOWN means auto-detect.
        config: Parser resource limits

    Returns:
        ParseResult; on any failure `root` is None and `error` says why
    """
    if database is DatabaseType.UNKNOWN and text.strip():
        database = detect_database_type(text)
        logger.debug("Detected database type: %s", database.value)

    if database is DatabaseType.MYSQL:
        try:
            return MySQLExplainParser().parse(text)
        except UnsupportedDialectError as e:
            return ParseResult(database_type=DatabaseType.MYSQL, error=e.message)

    result = parse_explain_text(text, config)

    # COSTS OFF output carries none of the PostgreSQL markers, so an
    # undetected dialect still gets a PostgreSQL attempt.
    if database is DatabaseType.UNKNOWN and text.strip() and not result.ok:
        return ParseResult(
            database_type=DatabaseType.UNKNOWN,
            error=(
                "Could not detect database type. Please ensure you've pasted "
                "a valid EXPLAIN output from PostgreSQL or MySQL."
            ),
        )

    return result
