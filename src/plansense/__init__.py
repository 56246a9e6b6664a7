"""PlanSense - plain-English explanations of PostgreSQL EXPLAIN output."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from plansense.exceptions import (
    PlanSenseError,
    ParseError,
    ConfigurationError,
    UnsupportedDialectError,
)

# Parsing
from plansense.parser import (
    BufferStats,
    CostRange,
    DatabaseType,
    OperationKind,
    ParseResult,
    ParserConfig,
    PlanNode,
    detect_database_type,
    extract_timings,
    parse,
    parse_explain_file,
    parse_explain_text,
)

# Translation
from plansense.translator import (
    NodeExplanation,
    PlanTranslator,
    SimplePlanTranslator,
    TranslationResult,
    get_node_explanation,
    translate,
    translate_simple,
)

# Orchestration and output
from plansense.config import Config, get_config, reset_config
from plansense.engine import ExplainReport, ExplainService
from plansense.output import OutputFormat, render

__all__ = [
    "__version__",
    # Exceptions
    "PlanSenseError",
    "ParseError",
    "ConfigurationError",
    "UnsupportedDialectError",
    # Parsing
    "BufferStats",
    "CostRange",
    "DatabaseType",
    "OperationKind",
    "ParseResult",
    "ParserConfig",
    "PlanNode",
    "detect_database_type",
    "extract_timings",
    "parse",
    "parse_explain_file",
    "parse_explain_text",
    # Translation
    "NodeExplanation",
    "PlanTranslator",
    "SimplePlanTranslator",
    "TranslationResult",
    "get_node_explanation",
    "translate",
    "translate_simple",
    # Orchestration and output
    "Config",
    "get_config",
    "reset_config",
    "ExplainReport",
    "ExplainService",
    "OutputFormat",
    "render",
]
