"""
Package-level exception hierarchy for PlanSense.

All exceptions inherit from PlanSenseError, enabling:
- Catching all PlanSense errors with a single except clause
- Rich context fields for debugging (source, config_key, database)
- Structured serialization via to_dict() for JSON error output

Hierarchy:
    PlanSenseError
    ├── ParseError               – Failed to parse EXPLAIN text input
    ├── ConfigurationError       – Invalid configuration
    └── UnsupportedDialectError  – Dialect detected but no parser for it
"""

from __future__ import annotations

from typing import Any


class PlanSenseError(Exception):
    """
    Base exception for all PlanSense errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error output."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(PlanSenseError):
    """
    Failed to parse EXPLAIN text.

    Raised when the input contains no recognizable plan node, is too
    large, or is nested too deeply. The public ``parse`` entry points turn
    this into ``ParseResult.error`` rather than letting it escape.

    Attributes:
        detail: Technical details for debugging (optional)
        source: Where the error occurred (e.g., "structure", "resource_limit")
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        source: str = "unknown",
    ) -> None:
        self.detail = detail
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["detail"] = self.detail
        result["source"] = self.source
        return result


# ── Configuration Errors ─────────────────────────────────────────────────


class ConfigurationError(PlanSenseError):
    """
    Invalid configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


# ── Dialect Errors ───────────────────────────────────────────────────────


class UnsupportedDialectError(PlanSenseError):
    """
    The input was recognized as a dialect that has no parser yet.

    Attributes:
        database: The detected database dialect (e.g., "mysql").
    """

    def __init__(self, message: str, database: str | None = None) -> None:
        self.database = database
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["database"] = self.database
        return result
