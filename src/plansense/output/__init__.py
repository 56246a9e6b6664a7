"""Output formatting for explain reports."""

from plansense.output.renderers import (
    OutputFormat,
    render,
    render_json,
    render_markdown,
    render_text,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_json",
    "render_markdown",
    "render_text",
]
