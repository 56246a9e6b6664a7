"""
ExplainService - orchestration layer for PlanSense.

The single entry point for turning raw EXPLAIN text into a narrative:
detect the dialect, parse, translate, and time the whole thing. The CLI
and any other delivery mechanism should call this service rather than
wiring the parser and translator together themselves.

Usage:
    from plansense.engine import ExplainService

    service = ExplainService()
    report = service.explain(text)

    if report.ok:
        print(report.translation.summary)
    else:
        print(report.error)

    # Compact one-line-per-node narrative
    report = service.explain(text, simple=True)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from plansense.config import Config, get_config
from plansense.exceptions import ParseError
from plansense.parser.config import DEFAULT_CONFIG, ParserConfig
from plansense.parser.dialect import parse
from plansense.parser.models import DatabaseType, ParseResult
from plansense.translator.models import TranslationResult
from plansense.translator.simple import SimplePlanTranslator
from plansense.translator.translator import PlanTranslator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplainReport:
    """
    Parse and translation outcome for one EXPLAIN text.

    `translation` is None exactly when parsing failed.
    """

    parse_result: ParseResult
    translation: TranslationResult | None
    duration_ms: float
    simple: bool = False
    source: str | None = None

    @property
    def ok(self) -> bool:
        """Whether a plan was parsed and translated."""
        return self.parse_result.ok and self.translation is not None

    @property
    def error(self) -> str | None:
        return self.parse_result.error

    @property
    def database_type(self) -> DatabaseType:
        return self.parse_result.database_type

    @property
    def node_count(self) -> int:
        root = self.parse_result.root
        return root.node_count if root is not None else 0

    @property
    def has_warnings(self) -> bool:
        return self.translation is not None and self.translation.has_warnings


class ExplainService:
    """
    Orchestrates detect -> parse -> translate.

    Holds no per-call state, so one instance can serve any number of
    inputs.
    """

    def __init__(
        self,
        config: Config | None = None,
        parser_config: ParserConfig | None = None,
    ) -> None:
        self.config = config or get_config()
        self.parser_config = parser_config or DEFAULT_CONFIG

    def explain(
        self,
        text: str,
        database: DatabaseType = DatabaseType.UNKNOWN,
        simple: bool = False,
        source: str | None = None,
    ) -> ExplainReport:
        """
        Parse and translate one EXPLAIN text.

        Args:
            text: The explainer output, verbatim
            database: Dialect to parse as. UNKNOWN means auto-detect.
            simple: Use the compact translator instead of the detailed one
            source: Where the text came from (file path), for reporting

        Returns:
            ExplainReport. Parse failures are reported through
            report.error, never raised.
        """
        start = time.perf_counter()

        parse_result = parse(text, database=database, config=self.parser_config)

        translation: TranslationResult | None = None
        if parse_result.root is not None:
            if simple:
                translation = SimplePlanTranslator(self.config).translate(parse_result.root)
            else:
                translation = PlanTranslator(self.config).translate(parse_result.root)
        else:
            logger.debug("Nothing to translate: %s", parse_result.error)

        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "Explained %s input (%s) in %.1fms",
            parse_result.database_type.value,
            source or "<text>",
            duration_ms,
        )

        return ExplainReport(
            parse_result=parse_result,
            translation=translation,
            duration_ms=duration_ms,
            simple=simple,
            source=source,
        )

    def explain_file(
        self,
        path: str | Path,
        database: DatabaseType = DatabaseType.UNKNOWN,
        simple: bool = False,
    ) -> ExplainReport:
        """
        Parse and translate EXPLAIN text read from a file.

        Raises:
            ParseError: If the file cannot be read
        """
        filepath = Path(path)
        try:
            text = filepath.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(
                f"Cannot read file: {filepath}",
                detail=str(e),
                source="file_read",
            ) from e

        return self.explain(text, database=database, simple=simple, source=str(filepath))
