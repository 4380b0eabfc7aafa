"""
Eligibility Wizard Models.

Data structures of the deterministic eligibility checker: questions,
conditions, result rules, question flow, the per-country rule document
and the wizard state snapshot.

Rule documents are pure data. They are loaded from YAML (see
config_loader.py) and never mutated after loading. WizardState is the only
entity that changes over a session, and every transition produces a new
snapshot instead of editing the previous one.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple, Union
from enum import Enum


# question_id -> answer value
AnswerSet = Dict[str, str]

ConditionValue = Union[str, Tuple[str, ...]]


class AnswerKind(Enum):
    """Type of answer a question expects."""
    BOOLEAN = "boolean"
    SELECT = "select"
    TEXT = "text"


class Operator(Enum):
    """Comparison operators available to conditions."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"


class EligibilityStatus(Enum):
    """Possible eligibility determinations."""
    ELIGIBLE = "eligible"
    NOT_ELIGIBLE = "not_eligible"
    NEEDS_INFO = "needs_info"


# =============================================================================
# Questions
# =============================================================================

@dataclass(frozen=True)
class AnswerOption:
    """A selectable option of a select-type question."""
    value: str
    label: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"value": self.value, "label": self.label}
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnswerOption":
        return cls(
            value=str(data["value"]),
            label=data.get("label", str(data["value"])),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Question:
    """
    A question shown by the wizard.

    Attributes:
        id: Unique identifier inside the rule document
        text: Prompt displayed to the user
        kind: Type of answer expected
        help_text: Optional clarification shown under the prompt
        options: Options for select-type questions
        required: Informational flag, checked only by validate_answers()
    """
    id: str
    text: str
    kind: AnswerKind = AnswerKind.BOOLEAN
    help_text: Optional[str] = None
    options: Tuple[AnswerOption, ...] = ()
    required: bool = True

    @property
    def option_values(self) -> List[str]:
        return [option.value for option in self.options]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "text": self.text,
            "type": self.kind.value,
            "required": self.required,
        }
        if self.help_text is not None:
            data["help_text"] = self.help_text
        if self.options:
            data["options"] = [option.to_dict() for option in self.options]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            id=data["id"],
            text=data["text"],
            kind=AnswerKind(data.get("type", "boolean")),
            help_text=data.get("help_text"),
            options=tuple(
                AnswerOption.from_dict(option)
                for option in data.get("options") or []
            ),
            required=bool(data.get("required", True)),
        )


# =============================================================================
# Conditions and rules
# =============================================================================

@dataclass(frozen=True)
class Condition:
    """
    Atomic predicate over one answer.

    Attributes:
        question_id: Question whose answer is checked
        operator: Comparison to apply
        value: A single value, or a tuple of values for in / not_in
    """
    question_id: str
    operator: Operator
    value: ConditionValue

    @property
    def is_set_valued(self) -> bool:
        return isinstance(self.value, tuple)

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if self.is_set_valued else self.value
        return {
            "question_id": self.question_id,
            "operator": self.operator.value,
            "value": value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Condition":
        raw_value = data["value"]
        if isinstance(raw_value, (list, tuple, set, frozenset)):
            value: ConditionValue = tuple(_answer_string(v) for v in raw_value)
        else:
            value = _answer_string(raw_value)
        return cls(
            question_id=data["question_id"],
            operator=Operator(data["operator"]),
            value=value,
        )


@dataclass(frozen=True)
class RequiredDocument:
    """A document the applicant has to provide."""
    name: str
    description: str
    mandatory: bool = True
    tips: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "description": self.description,
            "mandatory": self.mandatory,
        }
        if self.tips is not None:
            data["tips"] = self.tips
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequiredDocument":
        return cls(
            name=data["name"],
            description=data["description"],
            mandatory=bool(data.get("mandatory", True)),
            tips=data.get("tips"),
        )


@dataclass(frozen=True)
class NextStep:
    """A step the applicant should take after the evaluation."""
    order: int
    title: str
    description: str
    link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "order": self.order,
            "title": self.title,
            "description": self.description,
        }
        if self.link is not None:
            data["link"] = self.link
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NextStep":
        return cls(
            order=int(data["order"]),
            title=data["title"],
            description=data["description"],
            link=data.get("link"),
        )


@dataclass(frozen=True)
class Outcome:
    """
    Terminal eligibility determination.

    Attributes:
        status: Eligibility status
        explanation: Human-readable summary of the result
        reasoning: Detailed reasoning for the expanded view
        documents: Documents required for the application
        next_steps: Ordered steps to take next
        caveats: Confidence notes and disclaimers
    """
    status: EligibilityStatus
    explanation: str
    reasoning: Optional[str] = None
    documents: Tuple[RequiredDocument, ...] = ()
    next_steps: Tuple[NextStep, ...] = ()
    caveats: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status.value,
            "explanation": self.explanation,
            "documents": [doc.to_dict() for doc in self.documents],
            "next_steps": [step.to_dict() for step in self.next_steps],
            "caveats": list(self.caveats),
        }
        if self.reasoning is not None:
            data["reasoning"] = self.reasoning
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Outcome":
        return cls(
            status=EligibilityStatus(data["status"]),
            explanation=data["explanation"],
            reasoning=data.get("reasoning"),
            documents=tuple(
                RequiredDocument.from_dict(doc)
                for doc in data.get("documents") or []
            ),
            next_steps=tuple(
                NextStep.from_dict(step)
                for step in data.get("next_steps") or []
            ),
            caveats=tuple(data.get("caveats") or []),
        )


@dataclass(frozen=True)
class Rule:
    """
    Prioritized conjunction of conditions mapped to an outcome.

    Lower priority values are evaluated first. Rules with equal priority keep
    their declaration order.
    """
    id: str
    conditions: Tuple[Condition, ...]
    result: Outcome
    priority: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conditions": [c.to_dict() for c in self.conditions],
            "result": self.result.to_dict(),
            "priority": self.priority,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        results: Optional[Dict[str, Outcome]] = None,
    ) -> "Rule":
        """
        Build a rule from a mapping.

        ``result`` is either an inline outcome mapping or the name of an entry
        in ``results`` (shared result templates of the rule document).
        """
        raw_result = data["result"]
        if isinstance(raw_result, str):
            if not results or raw_result not in results:
                raise KeyError(f"Unknown result template '{raw_result}'")
            result = results[raw_result]
        else:
            result = Outcome.from_dict(raw_result)
        return cls(
            id=data["id"],
            conditions=tuple(
                Condition.from_dict(c) for c in data.get("conditions") or []
            ),
            result=result,
            priority=int(data.get("priority", 0)),
        )


# =============================================================================
# Question flow
# =============================================================================

@dataclass(frozen=True)
class Branch:
    """Conditional route to the next question. None means end of wizard."""
    conditions: Tuple[Condition, ...]
    next_question_id: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conditions": [c.to_dict() for c in self.conditions],
            "next_question_id": self.next_question_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Branch":
        return cls(
            conditions=tuple(
                Condition.from_dict(c) for c in data.get("conditions") or []
            ),
            next_question_id=data.get("next_question_id"),
        )


@dataclass(frozen=True)
class FlowEntry:
    """
    Routing table of one question.

    Branches are tried in declared order and the first match wins.
    default_next is used when no branch matches (None ends the wizard).
    """
    question_id: str
    branches: Tuple[Branch, ...] = ()
    default_next: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "branches": [b.to_dict() for b in self.branches],
            "default_next": self.default_next,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowEntry":
        return cls(
            question_id=data["question_id"],
            branches=tuple(
                Branch.from_dict(b) for b in data.get("branches") or []
            ),
            default_next=data.get("default_next"),
        )


# =============================================================================
# Rule document
# =============================================================================

@dataclass(frozen=True)
class RuleDocument:
    """
    Complete, versioned rule set for one country pathway.

    Attributes:
        country_code: Registry key of the document (e.g. 'jm')
        version: Rules version, stored with saved runs for auditing
        questions: Ordered questions; ids are unique
        question_flow: question_id -> FlowEntry
        rules: Result rules (evaluated by priority)
        default_result: Outcome used when no rule matches, always present
    """
    country_code: str
    version: str
    questions: Tuple[Question, ...]
    default_result: Outcome
    question_flow: Dict[str, FlowEntry] = field(default_factory=dict)
    rules: Tuple[Rule, ...] = ()
    country_name: str = ""
    description: str = ""
    last_updated: str = ""
    sources: Tuple[str, ...] = ()

    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    def get_question(self, question_id: Optional[str]) -> Optional[Question]:
        """Get a question by id (None if the id is unknown)."""
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def question_index(self, question_id: str) -> int:
        """Position of a question in document order, -1 if unknown."""
        for index, question in enumerate(self.questions):
            if question.id == question_id:
                return index
        return -1

    def get_flow(self, question_id: str) -> Optional[FlowEntry]:
        return self.question_flow.get(question_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country_code": self.country_code,
            "version": self.version,
            "country_name": self.country_name,
            "description": self.description,
            "questions": [q.to_dict() for q in self.questions],
            "question_flow": [f.to_dict() for f in self.question_flow.values()],
            "rules": [r.to_dict() for r in self.rules],
            "default_result": self.default_result.to_dict(),
            "last_updated": self.last_updated,
            "sources": list(self.sources),
        }


# =============================================================================
# Wizard state
# =============================================================================

@dataclass(frozen=True)
class WizardState:
    """
    Snapshot of one wizard session.

    Owned by the caller. Transitions in wizard.py return new snapshots; the
    answers dict and history list of a snapshot are never modified after it
    has been returned.
    """
    country_code: str
    current_question_id: str
    current_question_index: int = 0
    answers: AnswerSet = field(default_factory=dict)
    question_history: List[str] = field(default_factory=list)
    is_complete: bool = False
    result: Optional[Outcome] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country_code": self.country_code,
            "current_question_index": self.current_question_index,
            "current_question_id": self.current_question_id,
            "answers": dict(self.answers),
            "question_history": list(self.question_history),
            "is_complete": self.is_complete,
            "result": self.result.to_dict() if self.result else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WizardState":
        result = data.get("result")
        return cls(
            country_code=data["country_code"],
            current_question_id=data["current_question_id"],
            current_question_index=int(data.get("current_question_index", 0)),
            answers={k: _answer_string(v) for k, v in (data.get("answers") or {}).items()},
            question_history=list(data.get("question_history") or []),
            is_complete=bool(data.get("is_complete", False)),
            result=Outcome.from_dict(result) if result else None,
        )


def _answer_string(value: Any) -> str:
    """Normalize scalar YAML/JSON values to answer strings (True -> 'true')."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
