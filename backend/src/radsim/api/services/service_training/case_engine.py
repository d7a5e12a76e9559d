from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol

from radsim.api.services.service_feedback.evaluation import AttemptContext, EvaluationResult
from radsim.api.services.service_feedback.grader import CaseGrader
from radsim.schema.case_schema import Case
from radsim.utils.case_scoring import credited_findings, round_maximum

logger = logging.getLogger(__name__)

SESSION_TTL_S = 12 * 60 * 60
EMPTY_IMPRESSION_MESSAGE = "Please enter your impression before submitting."


class SessionState(str, Enum):
    AWAITING_FIRST_ATTEMPT = "awaiting_first_attempt"
    AWAITING_SECOND_ATTEMPT = "awaiting_second_attempt"
    RESOLVED = "resolved"
    GAVE_UP = "gave_up"


TERMINAL_STATES = (SessionState.RESOLVED, SessionState.GAVE_UP)


class ValidationError(ValueError):
    pass


class InvalidTransition(ValueError):
    pass


class SessionNotFound(LookupError):
    pass


class AttemptInProgress(RuntimeError):
    pass


class CompletionStore(Protocol):
    def set_completed(self, case_id: str, completed: bool) -> None: ...

    def save_progress(self, *, user_id: str, case_id: str, first_attempt: Optional[str],
                      second_attempt: Optional[str], score: Optional[int], completed: bool) -> None: ...


@dataclass
class AttemptRecord:
    attempt_number: int
    text: str
    feedback: str
    score: Optional[int]
    matches: List[bool] = field(default_factory=list)
    # matches the awarded score paid for; round 2 builds on these
    credited: List[bool] = field(default_factory=list)


@dataclass
class CaseSession:
    """In-memory state of one learner viewing one case."""
    session_id: str
    case: Case
    user_id: str
    state: SessionState = SessionState.AWAITING_FIRST_ATTEMPT
    attempts: List[AttemptRecord] = field(default_factory=list)
    last_result: Optional[EvaluationResult] = None
    last_error: Optional[str] = None
    score: Optional[int] = None
    completion_error: Optional[str] = None
    created_at: float = field(default_factory=time.monotonic)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def next_attempt_number(self) -> Optional[int]:
        if self.state == SessionState.AWAITING_FIRST_ATTEMPT:
            return 1
        if self.state == SessionState.AWAITING_SECOND_ATTEMPT:
            return 2
        return None

    @property
    def revealed(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def gave_up(self) -> bool:
        return self.state == SessionState.GAVE_UP


class CaseEngineService:
    """
    Drives a CaseSession through its two grading rounds:

    AWAITING_FIRST_ATTEMPT --perfect--> RESOLVED
    AWAITING_FIRST_ATTEMPT --partial--> AWAITING_SECOND_ATTEMPT --any--> RESOLVED
    any awaiting state --give up--> GAVE_UP
    any state --reset--> AWAITING_FIRST_ATTEMPT
    """

    def __init__(self, store: CompletionStore, grader: CaseGrader):
        self.store = store
        self.grader = grader

    def submit(self, session: CaseSession, text: Optional[str]) -> EvaluationResult:
        impression = (text or "").strip()
        if not impression:
            raise ValidationError(EMPTY_IMPRESSION_MESSAGE)
        if not session.lock.acquire(blocking=False):
            raise AttemptInProgress("An impression for this case is already being graded.")
        try:
            if session.revealed:
                raise InvalidTransition("This case is already resolved. Reset it to try again.")
            return self._grade_round(session, impression)
        finally:
            session.lock.release()

    def _grade_round(self, session: CaseSession, impression: str) -> EvaluationResult:
        attempt_number = session.next_attempt_number
        if attempt_number == 1:
            context = AttemptContext(attempt_number=1)
        else:
            first = session.attempts[0]
            context = AttemptContext(
                attempt_number=2,
                first_attempt_text=first.text,
                first_matches=first.credited,
            )

        result = self.grader.grade(session.case, impression, context)
        if result.is_error:
            # state untouched; the learner may resubmit
            session.last_error = result.feedback
            return result

        session.last_error = None
        session.last_result = result
        session.score = result.score
        credited = result.matches
        if attempt_number == 1 and result.matches:
            credited = credited_findings(result.matches, result.score or 0)
        session.attempts.append(
            AttemptRecord(attempt_number, impression, result.feedback, result.score, result.matches, credited)
        )

        if attempt_number == 1:
            perfect = result.score is not None and result.score >= round_maximum(len(session.case.gradable_findings))
            if perfect:
                self._enter_terminal(session, SessionState.RESOLVED)
            else:
                session.state = SessionState.AWAITING_SECOND_ATTEMPT
        else:
            self._enter_terminal(session, SessionState.RESOLVED)

        logger.info(
            "Session %s attempt %d scored %s -> %s",
            session.session_id, attempt_number, result.score, session.state.value,
        )
        return result

    def give_up(self, session: CaseSession) -> CaseSession:
        if not session.lock.acquire(blocking=False):
            raise AttemptInProgress("An impression for this case is already being graded.")
        try:
            if session.revealed:
                raise InvalidTransition("This case is already resolved.")
            session.score = 0
            session.last_error = None
            self._enter_terminal(session, SessionState.GAVE_UP)
        finally:
            session.lock.release()
        return session

    def reset(self, session: CaseSession) -> CaseSession:
        if not session.lock.acquire(blocking=False):
            raise AttemptInProgress("An impression for this case is already being graded.")
        try:
            session.state = SessionState.AWAITING_FIRST_ATTEMPT
            session.attempts = []
            session.last_result = None
            session.last_error = None
            session.score = None
            session.completion_error = None
        finally:
            session.lock.release()
        return session

    def _enter_terminal(self, session: CaseSession, state: SessionState) -> None:
        session.state = state
        session.completion_error = None

        # Both writes are best effort and independent; the transition stands.
        try:
            self.store.set_completed(session.case.id, True)
        except Exception as e:
            logger.error("Could not mark case %s completed: %r", session.case.id, e)
            session.completion_error = "The case could not be marked as completed. Please try again later."

        texts = [a.text for a in session.attempts]
        try:
            self.store.save_progress(
                user_id=session.user_id,
                case_id=session.case.id,
                first_attempt=texts[0] if texts else None,
                second_attempt=texts[1] if len(texts) > 1 else None,
                score=session.score,
                completed=True,
            )
        except Exception as e:
            logger.warning("Could not save progress for user %s case %s: %r", session.user_id, session.case.id, e)


class SessionRegistry:
    """Open case sessions, kept in memory and owned by one user each."""

    def __init__(self, ttl_s: float = SESSION_TTL_S):
        self.ttl_s = ttl_s
        self._sessions: Dict[str, CaseSession] = {}
        self._lock = threading.Lock()

    def open(self, case: Case, user_id: str) -> CaseSession:
        if not case.is_gradable:
            raise ValidationError("This case has no expected findings and cannot be graded.")
        session = CaseSession(session_id=uuid.uuid4().hex, case=case, user_id=user_id)
        with self._lock:
            self._prune()
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str, user_id: str) -> CaseSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise SessionNotFound("Session not found")
        return session

    def __len__(self) -> int:
        return len(self._sessions)

    def _prune(self) -> None:
        now = time.monotonic()
        expired = [sid for sid, s in self._sessions.items() if now - s.created_at > self.ttl_s]
        for sid in expired:
            del self._sessions[sid]
