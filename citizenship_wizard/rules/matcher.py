"""
Rule Matcher - resolves the eligibility outcome for an answer set.

Result rules are sorted by priority (lower first, stable for ties) and the
first rule whose conditions all hold supplies the outcome. When nothing
matches, the rule document's default result is returned, so evaluation
always produces an outcome.

This differs from question flow routing (flow.py), where branches are
tried in the order they are declared.
"""

from typing import Iterable, List, Optional, Tuple
import logging

from citizenship_wizard.conditions.evaluator import evaluate_conditions
from citizenship_wizard.conditions.trace import EvaluationTrace, Resolution
from citizenship_wizard.models import AnswerSet, Outcome, Rule, RuleDocument
from citizenship_wizard.settings import settings

logger = logging.getLogger(__name__)


def sort_rules(rules: Iterable[Rule]) -> List[Rule]:
    """Rules in evaluation order: ascending priority, declaration order on ties."""
    return sorted(rules, key=lambda rule: rule.priority)


def find_matching_rule(rules: Iterable[Rule], answers: AnswerSet) -> Optional[Rule]:
    """
    Find the first matching rule in priority order.

    Args:
        rules: Result rules of a document
        answers: question_id -> answer value

    Returns:
        The matching rule, or None if no rule matches
    """
    for rule in sort_rules(rules):
        if evaluate_conditions(rule.conditions, answers):
            return rule
    return None


def match(rules: Iterable[Rule], answers: AnswerSet, default_result: Outcome) -> Outcome:
    """Outcome of the first matching rule, or default_result."""
    rule = find_matching_rule(rules, answers)
    if rule is None:
        return default_result
    return rule.result


def evaluate_eligibility(document: RuleDocument, answers: AnswerSet) -> Outcome:
    """
    Evaluate eligibility for an answer set.

    Stateless one-shot evaluation without wizard bookkeeping. Deterministic:
    the same document and answers always give the same outcome.
    """
    if settings.get_nested("logging.log_traces", False):
        outcome, trace = evaluate_with_trace(document, answers)
        logger.debug("Eligibility trace:\n%s", trace.to_compact_string())
        return outcome
    return match(document.rules, answers, document.default_result)


def evaluate_with_trace(
    document: RuleDocument,
    answers: AnswerSet,
) -> Tuple[Outcome, EvaluationTrace]:
    """
    Evaluate eligibility and record every rule check.

    Returns the same outcome as evaluate_eligibility() together with an
    EvaluationTrace. Checking stops at the first matching rule.
    """
    trace = EvaluationTrace(
        country_code=document.country_code,
        rules_version=document.version,
    )

    for rule in sort_rules(document.rules):
        passed = evaluate_conditions(rule.conditions, answers)
        answered = {
            c.question_id: answers[c.question_id]
            for c in rule.conditions
            if c.question_id in answers
        }
        trace.record(rule.id, rule.priority, passed, answered)
        if passed:
            trace.set_result(Resolution.RULE_MATCHED, rule.result.status.value, rule.id)
            return rule.result, trace

    trace.set_result(Resolution.DEFAULT, document.default_result.status.value)
    return document.default_result, trace
