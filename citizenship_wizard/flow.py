"""
Flow Resolver - chooses the next question of the wizard.

Each question may have a FlowEntry in the rule document:
- branches are tried in declared order, the first match wins
- default_next is used when no branch matches
- a target of None ends the wizard

A question without a FlowEntry falls through to the next question in
document order (or ends the wizard if it is the last one).

Targets that name no question end the wizard instead of failing, so a
misconfigured document still reaches an outcome.
"""

from typing import List, Optional
import logging

from citizenship_wizard.conditions.evaluator import evaluate_conditions
from citizenship_wizard.models import AnswerSet, Question, RuleDocument

logger = logging.getLogger(__name__)


def first_question(document: RuleDocument) -> Optional[Question]:
    """First question in document order (None for an empty document)."""
    if not document.questions:
        return None
    return document.questions[0]


def _resolve_target(document: RuleDocument, target_id: Optional[str], source_id: str) -> Optional[Question]:
    if target_id is None:
        return None
    question = document.get_question(target_id)
    if question is None:
        logger.warning(
            "Flow of '%s' points to unknown question '%s' in %s@%s; ending wizard",
            source_id, target_id, document.country_code, document.version,
        )
    return question


def next_question(
    document: RuleDocument,
    current_question_id: str,
    answers: AnswerSet,
) -> Optional[Question]:
    """
    Resolve the question that follows current_question_id.

    Args:
        document: Rule document
        current_question_id: Question that was just answered
        answers: All answers so far, including the current one

    Returns:
        The next Question, or None when the wizard has ended
    """
    flow = document.get_flow(current_question_id)

    if flow is None:
        index = document.question_index(current_question_id)
        if 0 <= index < len(document.questions) - 1:
            return document.questions[index + 1]
        return None

    for branch in flow.branches:
        if evaluate_conditions(branch.conditions, answers):
            return _resolve_target(document, branch.next_question_id, current_question_id)

    return _resolve_target(document, flow.default_next, current_question_id)


def is_complete(
    document: RuleDocument,
    current_question_id: str,
    answers: AnswerSet,
) -> bool:
    """True when no question follows current_question_id."""
    return next_question(document, current_question_id, answers) is None


def previous_question(document: RuleDocument, question_history: List[str]) -> Optional[Question]:
    """Question shown before the current one, taken from the history."""
    if len(question_history) < 2:
        return None
    return document.get_question(question_history[-2])
