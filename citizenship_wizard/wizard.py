"""
Wizard State Machine.

Drives one eligibility session over a rule document:

    state = initialize(document)
    state = advance(document, state, state.current_question_id, "false")
    state = retreat(document, state)     # undo the last answer
    state = restart(document)            # start over

Every transition returns a new WizardState. Snapshots handed out earlier
are never modified, so callers can keep them (e.g. to roll back the UI).

Misuse is tolerated rather than raised: answering a completed run or going
back from the first question returns the state unchanged.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional

from citizenship_wizard.errors import NoQuestionsError
from citizenship_wizard.flow import (
    first_question,
    is_complete,
    next_question,
    previous_question,
)
from citizenship_wizard.logger import logger
from citizenship_wizard.models import (
    AnswerKind,
    AnswerSet,
    Question,
    RuleDocument,
    WizardState,
)
from citizenship_wizard.rules.matcher import evaluate_eligibility
from citizenship_wizard.settings import settings


BOOLEAN_VALUES = ("true", "false")


@dataclass
class AnswerValidation:
    """Result of validate_answers()."""
    valid: bool
    missing_questions: List[str] = field(default_factory=list)

    def to_dict(self):
        return {"valid": self.valid, "missing_questions": list(self.missing_questions)}


def initialize(document: RuleDocument) -> WizardState:
    """
    Create the initial state: first question, no answers.

    Raises:
        NoQuestionsError: If the document has no questions
    """
    question = first_question(document)
    if question is None:
        raise NoQuestionsError(document.country_code)

    return WizardState(
        country_code=document.country_code,
        current_question_id=question.id,
        current_question_index=0,
        answers={},
        question_history=[question.id],
        is_complete=False,
        result=None,
    )


def _reposition(state: WizardState, question_id: str) -> List[str]:
    """
    History with question_id as its last entry.

    An earlier question is re-opened by cutting the history back to it;
    any other question takes the place of the current one.
    """
    history = state.question_history
    if question_id in history:
        last = len(history) - 1 - history[::-1].index(question_id)
        return history[:last + 1]
    return history[:-1] + [question_id]


def _complete(document: RuleDocument, state: WizardState, answers: AnswerSet) -> WizardState:
    result = evaluate_eligibility(document, answers)
    logger.event(
        "wizard_completed",
        country_code=document.country_code,
        rules_version=document.version,
        status=result.status.value,
        questions_answered=len(answers),
    )
    return replace(state, answers=answers, is_complete=True, result=result)


def advance(
    document: RuleDocument,
    state: WizardState,
    question_id: str,
    value: str,
) -> WizardState:
    """
    Record an answer and move to the next question or to the result.

    An answer for a question other than the current one is still recorded
    under its own id. That question takes the current one's place in the
    history (or the history is cut back to it if it was shown earlier) and
    routing continues from it.

    Args:
        document: Rule document of the session
        state: Current snapshot
        question_id: Answered question
        value: Answer value

    Returns:
        New snapshot (the given one if the wizard is already complete)
    """
    if state.is_complete:
        logger.warning(
            "Answer ignored, wizard already complete",
            country_code=state.country_code,
            question_id=question_id,
        )
        return state

    if question_id != state.current_question_id:
        logger.warning(
            "Answer recorded for a question that is not current",
            question_id=question_id,
            current_question_id=state.current_question_id,
        )
        # The answered question becomes current, so retreat re-opens it
        history = _reposition(state, question_id)
        state = replace(
            state,
            current_question_id=question_id,
            current_question_index=len(history) - 1,
            question_history=history,
        )

    answers = dict(state.answers)
    answers[question_id] = value

    if is_complete(document, question_id, answers):
        return _complete(document, state, answers)

    question = next_question(document, question_id, answers)
    if question is None:
        return _complete(document, state, answers)

    logger.event(
        "wizard_advanced",
        country_code=document.country_code,
        answered=question_id,
        next_question=question.id,
    )
    return replace(
        state,
        current_question_index=state.current_question_index + 1,
        current_question_id=question.id,
        answers=answers,
        question_history=state.question_history + [question.id],
        is_complete=False,
        result=None,
    )


def retreat(document: RuleDocument, state: WizardState) -> WizardState:
    """
    Undo the last answer.

    - Completed run: re-opens the last answered question and clears the result.
    - In progress: steps back to the previous question in the history and
      clears its answer so it can be answered again. Earlier answers are kept.
    - At the first question: returns the state unchanged.
    """
    if state.is_complete:
        answers = dict(state.answers)
        answers.pop(state.current_question_id, None)
        logger.event(
            "wizard_retreated",
            country_code=document.country_code,
            reopened=state.current_question_id,
        )
        return replace(state, answers=answers, is_complete=False, result=None)

    previous_q = previous_question(document, state.question_history)
    if previous_q is None:
        return state

    history = state.question_history[:-1]
    popped = state.question_history[-1]
    previous = previous_q.id

    answers = dict(state.answers)
    answers.pop(popped, None)
    answers.pop(previous, None)

    logger.event(
        "wizard_retreated",
        country_code=document.country_code,
        left=popped,
        reopened=previous,
    )
    return replace(
        state,
        current_question_index=max(state.current_question_index - 1, 0),
        current_question_id=previous,
        answers=answers,
        question_history=history,
        is_complete=False,
        result=None,
    )


def restart(document: RuleDocument) -> WizardState:
    """Fresh initial state for the same document."""
    logger.event("wizard_restarted", country_code=document.country_code)
    return initialize(document)


def current_question(document: RuleDocument, state: WizardState) -> Optional[Question]:
    return document.get_question(state.current_question_id)


def progress_percent(document: RuleDocument, state: WizardState) -> int:
    """
    Approximate progress in percent.

    Based on questions shown vs. questions in the document, so branches that
    skip questions make it jump. Reports 100 only once the run is complete.
    """
    if state.is_complete:
        return 100

    total = len(document.questions)
    if total == 0:
        return 0

    cap = settings.get_nested("wizard.max_in_progress_percent", 99)
    # Round half up
    percent = int(100 * len(state.question_history) / total + 0.5)
    return min(percent, cap)


def validate_answers(
    document: RuleDocument,
    answers: AnswerSet,
    question_history: List[str],
) -> AnswerValidation:
    """Check that every required question shown in the history has an answer."""
    missing = []
    for question_id in question_history:
        question = document.get_question(question_id)
        if question is not None and question.required and not answers.get(question_id):
            missing.append(question_id)

    return AnswerValidation(valid=not missing, missing_questions=missing)


def validate_answer_value(question: Question, value: str) -> Optional[str]:
    """
    Check that a value fits the question's answer kind.

    Returns:
        Error message, or None if the value is acceptable
    """
    if question.kind is AnswerKind.BOOLEAN:
        if value not in BOOLEAN_VALUES:
            return f"Answer to '{question.id}' must be 'true' or 'false'"
    elif question.kind is AnswerKind.SELECT:
        if question.options and value not in question.option_values:
            allowed = ", ".join(question.option_values)
            return f"Answer to '{question.id}' must be one of: {allowed}"
    elif question.required and not value.strip():
        return f"Answer to '{question.id}' must not be empty"
    return None
