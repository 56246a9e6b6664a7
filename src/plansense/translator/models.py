"""
Output models for plan translation.

TranslationResult is what every translator returns: a one-paragraph
summary, one string per executed step (in execution order), and the
de-duplicated warnings and recommendations for the whole plan.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TranslationResult(BaseModel):
    """Human-readable narrative for one plan tree."""

    model_config = ConfigDict(frozen=True)

    summary: str = Field(..., description="One-paragraph description of the whole query")
    steps: list[str] = Field(
        default_factory=list,
        description="One line per plan node, children before parents",
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Performance warnings, duplicates removed, first occurrence kept",
    )
    recommendations: list[str] = Field(
        default_factory=list,
        description="Suggested fixes, duplicates removed, first occurrence kept",
    )

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def unique(items: list[str]) -> list[str]:
    """Drop empty and repeated strings, keeping first occurrences in order."""
    return [item for item in dict.fromkeys(items) if item]
