from typing import List, Optional

from pydantic import BaseModel, Field


class ImpressionIn(BaseModel):
    # blank text is rejected by the engine with its own message
    text: str = Field("", max_length=10000)


class EvaluationOut(BaseModel):
    feedback: str
    score: Optional[int] = None
    show_expected: bool = False
    clue_given: bool = False
    outcome: str
    error_kind: Optional[str] = None


class AttemptOut(BaseModel):
    attempt_number: int
    text: str
    feedback: str
    score: Optional[int] = None


class RevealOut(BaseModel):
    """Answer key, only sent once the session is resolved or given up."""
    expected_findings: List[str]
    additional_findings: List[str]
    summary_of_pathology: str
    survey_url: Optional[str] = None


class SessionOut(BaseModel):
    session_id: str
    case_id: str
    state: str
    next_attempt_number: Optional[int] = None
    attempts: List[AttemptOut] = Field(default_factory=list)
    last_result: Optional[EvaluationOut] = None
    last_error: Optional[str] = None
    score: Optional[int] = None
    gave_up: bool = False
    completion_error: Optional[str] = None
    grading_available: bool = True
    reveal: Optional[RevealOut] = None


class SubmitOut(BaseModel):
    evaluation: EvaluationOut
    session: SessionOut


class ProgressOut(BaseModel):
    case_id: str
    first_attempt: Optional[str] = None
    second_attempt: Optional[str] = None
    score: Optional[int] = None
    completed: bool = False
