"""EXPLAIN text parsing module."""

from plansense.exceptions import ParseError
from plansense.parser.config import DEFAULT_CONFIG, STRICT_CONFIG, ParserConfig
from plansense.parser.dialect import detect_database_type, parse
from plansense.parser.models import (
    BufferStats,
    CostRange,
    DatabaseType,
    OperationKind,
    ParseResult,
    PlanNode,
)
from plansense.parser.parser import extract_timings, parse_explain_file, parse_explain_text

__all__ = [
    "BufferStats",
    "CostRange",
    "DatabaseType",
    "OperationKind",
    "ParseResult",
    "PlanNode",
    "parse",
    "parse_explain_text",
    "parse_explain_file",
    "extract_timings",
    "detect_database_type",
    "ParseError",
    "ParserConfig",
    "DEFAULT_CONFIG",
    "STRICT_CONFIG",
]
