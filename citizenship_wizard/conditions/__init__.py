"""
Condition evaluation and tracing.

Usage:
    from citizenship_wizard.conditions import evaluate_condition, evaluate_conditions

    if evaluate_conditions(branch.conditions, answers):
        ...
"""

from citizenship_wizard.conditions.evaluator import (
    evaluate_condition,
    evaluate_conditions,
)
from citizenship_wizard.conditions.trace import (
    EvaluationTrace,
    Resolution,
    RuleEntry,
)

__all__ = [
    "evaluate_condition",
    "evaluate_conditions",
    "EvaluationTrace",
    "Resolution",
    "RuleEntry",
]
