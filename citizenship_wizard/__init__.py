"""
Citizenship eligibility wizard.

Deterministic, rule-based eligibility checking: a question flow decides
what to ask next, prioritized rules decide the outcome.

Usage:
    from citizenship_wizard import load_registry, initialize, advance

    document = load_registry().require_rules("jm")
    state = initialize(document)
    state = advance(document, state, state.current_question_id, "false")
"""

from citizenship_wizard.config_loader import ConfigLoader, load_registry
from citizenship_wizard.errors import (
    ConfigLoadError,
    ConfigValidationError,
    ConfigurationError,
    CountryNotAvailableError,
    NoQuestionsError,
    RulesNotFoundError,
)
from citizenship_wizard.flow import is_complete, next_question
from citizenship_wizard.models import (
    AnswerKind,
    AnswerOption,
    AnswerSet,
    Branch,
    Condition,
    EligibilityStatus,
    FlowEntry,
    NextStep,
    Operator,
    Outcome,
    Question,
    RequiredDocument,
    Rule,
    RuleDocument,
    WizardState,
)
from citizenship_wizard.registry import CountryMetadata, CountryRegistry, CountryStatus
from citizenship_wizard.rules.matcher import evaluate_eligibility, evaluate_with_trace
from citizenship_wizard.wizard import (
    advance,
    current_question,
    initialize,
    progress_percent,
    restart,
    retreat,
    validate_answers,
)

# Name used by callers that only need one-shot evaluation
evaluate = evaluate_eligibility

__all__ = [
    "AnswerKind",
    "AnswerOption",
    "AnswerSet",
    "Branch",
    "Condition",
    "ConfigLoadError",
    "ConfigLoader",
    "ConfigValidationError",
    "ConfigurationError",
    "CountryMetadata",
    "CountryNotAvailableError",
    "CountryRegistry",
    "CountryStatus",
    "EligibilityStatus",
    "FlowEntry",
    "NextStep",
    "NoQuestionsError",
    "Operator",
    "Outcome",
    "Question",
    "RequiredDocument",
    "Rule",
    "RuleDocument",
    "RulesNotFoundError",
    "WizardState",
    "advance",
    "current_question",
    "evaluate",
    "evaluate_eligibility",
    "evaluate_with_trace",
    "initialize",
    "is_complete",
    "load_registry",
    "next_question",
    "progress_percent",
    "restart",
    "retreat",
    "validate_answers",
]
