"""Plan tree to narrative translation."""

from plansense.translator.explanations import (
    NodeExplanation,
    detect_performance_issues,
    generate_recommendations,
    get_node_explanation,
)
from plansense.translator.models import TranslationResult
from plansense.translator.simple import SimplePlanTranslator, translate_simple
from plansense.translator.translator import ExecutionStep, PlanTranslator, translate

__all__ = [
    "NodeExplanation",
    "get_node_explanation",
    "detect_performance_issues",
    "generate_recommendations",
    "TranslationResult",
    "ExecutionStep",
    "PlanTranslator",
    "translate",
    "SimplePlanTranslator",
    "translate_simple",
]
