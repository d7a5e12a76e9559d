from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from radsim.utils.case_scoring import round_maximum

Outcome = Literal["parsed", "fallback", "error"]
ErrorKind = Literal["configuration", "transport"]


@dataclass
class AttemptContext:
    """Which grading round is being scored, and what round 1 already earned."""
    attempt_number: int = 1
    first_attempt_text: Optional[str] = None
    first_matches: Optional[List[bool]] = None


@dataclass
class FallbackContext:
    """Everything needed to score an attempt without the grading service."""
    learner_text: str
    expected_findings: List[str]
    attempt: AttemptContext = field(default_factory=AttemptContext)

    def round_maximum(self) -> int:
        return round_maximum(
            len(self.expected_findings),
            self.attempt.attempt_number,
            self.attempt.first_matches,
        )


@dataclass(frozen=True)
class Parsed:
    feedback: str
    score: int
    clue_given: Optional[bool] = None
    show_expected: Optional[bool] = None


@dataclass(frozen=True)
class Fallback:
    reason: str
    feedback: str = ""
    clue_given: Optional[bool] = None
    show_expected: Optional[bool] = None


@dataclass
class EvaluationResult:
    feedback: str
    score: Optional[int]
    show_expected: bool = False
    clue_given: bool = False
    outcome: Outcome = "parsed"
    reason: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    matches: List[bool] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.outcome == "error"


def error_result(message: str, kind: ErrorKind = "transport") -> EvaluationResult:
    """Terminal result for a grading call that could not be made or failed."""
    return EvaluationResult(
        feedback=message,
        score=0,
        show_expected=False,
        clue_given=False,
        outcome="error",
        reason=message,
        error_kind=kind,
    )
