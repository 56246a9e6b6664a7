"""
JSON schema definitions for stable machine-readable output.

The schema is versioned: fields are only removed or renamed in a new
major version.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TimingSchema(BaseModel):
    """Planning and execution time reported by the server."""

    model_config = ConfigDict(frozen=True)

    planning_time_ms: float | None = Field(None, description="Planning time in milliseconds")
    execution_time_ms: float | None = Field(None, description="Execution time in milliseconds")


class TranslationSchema(BaseModel):
    """Schema for the narrative."""

    model_config = ConfigDict(frozen=True)

    summary: str = Field(..., description="One-paragraph description of the query")
    steps: list[str] = Field(default_factory=list, description="Steps in execution order")
    warnings: list[str] = Field(default_factory=list, description="Performance warnings")
    recommendations: list[str] = Field(default_factory=list, description="Suggested fixes")


class ExplainReportSchema(BaseModel):
    """Top-level schema for one explained plan."""

    model_config = ConfigDict(frozen=True)

    version: str = Field("1.0", description="Schema version")
    ok: bool = Field(..., description="Whether a plan was parsed")
    database: str = Field(..., description="Dialect the text was parsed as")
    error: str | None = Field(None, description="Why parsing failed, when it did")
    source: str | None = Field(None, description="File the plan was read from")
    mode: str = Field("detailed", description="Narrative style (detailed or simple)")
    node_count: int = Field(0, description="Number of plan nodes")
    has_analyze_data: bool = Field(False, description="Whether EXPLAIN ANALYZE statistics were present")
    timing: TimingSchema = Field(default_factory=TimingSchema, description="Server timings")
    translation: TranslationSchema | None = Field(None, description="The narrative")
    duration_ms: float = Field(0.0, description="Time spent parsing and translating")
