"""
Rules module - eligibility outcome resolution.

This module provides:
- find_matching_rule / match: priority-ordered rule matching
- evaluate_eligibility: one-shot evaluation of a rule document
- evaluate_with_trace: the same, with a rule-by-rule EvaluationTrace
"""

from citizenship_wizard.rules.matcher import (
    evaluate_eligibility,
    evaluate_with_trace,
    find_matching_rule,
    match,
    sort_rules,
)


__all__ = [
    "evaluate_eligibility",
    "evaluate_with_trace",
    "find_matching_rule",
    "match",
    "sort_rules",
]
