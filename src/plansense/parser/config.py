"""
Parser configuration with resource limits.

These limits stop pathological pastes from building enormous trees or
blowing the recursion limit in the tree walks that follow parsing. The
defaults are generous for normal usage but will catch genuinely
problematic inputs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ParserConfig(BaseModel):
    """
    Configuration for the EXPLAIN text parser with resource limits.

    Attributes:
        max_input_chars: Maximum length of the raw EXPLAIN text.
        max_nodes: Maximum number of plan nodes in the tree.
        max_depth: Maximum tree depth. Translation walks the tree
            recursively, so this bounds the call stack.

    Example:
        # Use defaults
        config = ParserConfig()

        # Stricter limits for untrusted input
        config = ParserConfig(max_input_chars=100_000, max_nodes=500)
    """

    model_config = ConfigDict(frozen=True)

    max_input_chars: int = Field(
        default=10_000_000,
        gt=0,
        description="Maximum number of characters of EXPLAIN text",
    )

    max_nodes: int = Field(
        default=50_000,
        gt=0,
        description="Maximum number of plan nodes",
    )

    max_depth: int = Field(
        default=100,
        gt=0,
        description="Maximum tree depth (nesting level)",
    )


DEFAULT_CONFIG = ParserConfig()

# Stricter limits for untrusted input
STRICT_CONFIG = ParserConfig(
    max_input_chars=1_000_000,
    max_nodes=5_000,
    max_depth=50,
)
