"""
Condition evaluation for rule and flow matching.

A condition never holds for an unanswered question, whatever its operator:
not_equals and not_in against a missing answer are False as well.
"""

from typing import Iterable
import logging

from citizenship_wizard.models import AnswerSet, Condition, Operator

logger = logging.getLogger(__name__)


def _as_set(condition: Condition) -> tuple:
    # A scalar value given to in / not_in behaves as a singleton set
    if condition.is_set_valued:
        return condition.value
    return (condition.value,)


def evaluate_condition(condition: Condition, answers: AnswerSet) -> bool:
    """
    Evaluate one condition against the answers.

    Args:
        condition: Condition to check
        answers: question_id -> answer value

    Returns:
        True if the condition holds
    """
    answer = answers.get(condition.question_id)
    if answer is None:
        return False

    operator = condition.operator

    if operator in (Operator.EQUALS, Operator.NOT_EQUALS):
        if condition.is_set_valued:
            logger.warning(
                "Condition on '%s' uses %s with a set of values; treated as not matching",
                condition.question_id, operator.value,
            )
            return False
        if operator is Operator.EQUALS:
            return answer == condition.value
        return answer != condition.value

    if operator is Operator.IN:
        return answer in _as_set(condition)

    if operator is Operator.NOT_IN:
        return answer not in _as_set(condition)

    return False


def evaluate_conditions(conditions: Iterable[Condition], answers: AnswerSet) -> bool:
    """True if every condition holds. An empty list always holds."""
    return all(evaluate_condition(condition, answers) for condition in conditions)
