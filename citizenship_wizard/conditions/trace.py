"""
Evaluation trace for rule matching.

Records which result rules were checked for an answer set, in the order
they were checked, and how the outcome was resolved. Used for debugging
("why did I get this result") and returned by the evaluate endpoint.
"""

from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Resolution(str, Enum):
    """
    How an outcome was resolved.

    - RULE_MATCHED: a result rule matched
    - DEFAULT: no rule matched, the document's default result was used
    - NONE: not resolved yet
    """
    RULE_MATCHED = "rule_matched"
    DEFAULT = "default"
    NONE = "none"


@dataclass
class RuleEntry:
    """
    Record of a single rule check.

    Attributes:
        rule_id: Id of the checked rule
        priority: Priority of the rule
        result: Whether all of its conditions held
        answered_fields: Answers the rule's conditions looked at
    """
    rule_id: str
    priority: int
    result: bool
    answered_fields: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "priority": self.priority,
            "result": self.result,
            "answered_fields": self.answered_fields,
        }

    def to_compact_string(self) -> str:
        result_str = "PASS" if self.result else "FAIL"
        values_str = ""
        if self.answered_fields:
            values_str = f" ({', '.join(f'{k}={v}' for k, v in self.answered_fields.items())})"
        return f"  [{self.priority}] {self.rule_id}: {result_str}{values_str}"


@dataclass
class EvaluationTrace:
    """
    Trace of one eligibility evaluation.

    Attributes:
        country_code: Rule document the evaluation ran against
        rules_version: Version of that document
        entries: Rule checks in evaluation order
        resolution: How the outcome was resolved
        matched_rule: Id of the matching rule (None for the default result)
        status: Status of the resolved outcome
    """
    country_code: str = ""
    rules_version: str = ""
    entries: List[RuleEntry] = field(default_factory=list)
    resolution: Resolution = Resolution.NONE
    matched_rule: Optional[str] = None
    status: Optional[str] = None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    def record(
        self,
        rule_id: str,
        priority: int,
        result: bool,
        answered_fields: Optional[Dict[str, str]] = None
    ) -> None:
        """Record one rule check."""
        self.entries.append(RuleEntry(
            rule_id=rule_id,
            priority=priority,
            result=result,
            answered_fields=answered_fields or {},
        ))

    def set_result(
        self,
        resolution: Resolution,
        status: str,
        matched_rule: Optional[str] = None
    ) -> None:
        self.resolution = resolution
        self.status = status
        self.matched_rule = matched_rule
        self.end_time = datetime.now()

    @property
    def rules_checked(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country_code": self.country_code,
            "rules_version": self.rules_version,
            "resolution": self.resolution.value,
            "matched_rule": self.matched_rule,
            "status": self.status,
            "rules_checked": self.rules_checked,
            "entries": [e.to_dict() for e in self.entries],
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }

    def to_compact_string(self) -> str:
        """
        Compact multi-line form for logs.

        Format:
            [jm@1.0.0] -> rule_matched: parent_jamaican_citizen (eligible)
              [1] born_in_jamaica: FAIL (born_in_jamaica=false)
              [2] parent_jamaican_citizen: PASS (...)
        """
        target = self.matched_rule or "default_result"
        lines = [
            f"[{self.country_code}@{self.rules_version}] -> "
            f"{self.resolution.value}: {target} ({self.status})"
        ]
        lines.extend(entry.to_compact_string() for entry in self.entries)
        return "\n".join(lines)
