from uuid import UUID

from fastapi import Depends, HTTPException

from radsim.api.services.service_feedback.evaluation import EvaluationResult
from radsim.api.services.service_feedback.grader import CaseGrader
from radsim.api.services.service_training.case_engine import (
    AttemptInProgress,
    CaseEngineService,
    CaseSession,
    InvalidTransition,
    SessionNotFound,
    SessionRegistry,
    ValidationError,
)
from radsim.core.case_store import CaseStore
from radsim.schema.auth import AuthUser
from radsim.schema.session_schema import (
    AttemptOut,
    EvaluationOut,
    ImpressionIn,
    RevealOut,
    SessionOut,
    SubmitOut,
)
from radsim.utils.auth import (
    get_case_store,
    get_current_user,
    get_engine,
    get_grader,
    get_session_registry,
)


def _evaluation_out(result: EvaluationResult) -> EvaluationOut:
    return EvaluationOut(
        feedback=result.feedback,
        score=result.score,
        show_expected=result.show_expected,
        clue_given=result.clue_given,
        outcome=result.outcome,
        error_kind=result.error_kind,
    )


def session_out(session: CaseSession, grading_available: bool) -> SessionOut:
    reveal = None
    if session.revealed:
        case = session.case
        reveal = RevealOut(
            expected_findings=case.gradable_findings,
            additional_findings=case.additional_findings,
            summary_of_pathology=case.summary_of_pathology,
            survey_url=case.survey_url,
        )
    return SessionOut(
        session_id=session.session_id,
        case_id=session.case.id,
        state=session.state.value,
        next_attempt_number=session.next_attempt_number,
        attempts=[
            AttemptOut(attempt_number=a.attempt_number, text=a.text, feedback=a.feedback, score=a.score)
            for a in session.attempts
        ],
        last_result=_evaluation_out(session.last_result) if session.last_result else None,
        last_error=session.last_error,
        score=session.score,
        gave_up=session.gave_up,
        completion_error=session.completion_error,
        grading_available=grading_available,
        reveal=reveal,
    )


def _session(registry: SessionRegistry, session_id: str, user: AuthUser) -> CaseSession:
    try:
        return registry.get(session_id, user.id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


def open_session(
    case_id: UUID,
    user: AuthUser = Depends(get_current_user),
    store: CaseStore = Depends(get_case_store),
    registry: SessionRegistry = Depends(get_session_registry),
    grader: CaseGrader = Depends(get_grader),
) -> SessionOut:
    case = store.get_case(str(case_id))
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found")
    try:
        session = registry.open(case, user.id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_out(session, grader.configured)


def get_session(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
    grader: CaseGrader = Depends(get_grader),
) -> SessionOut:
    return session_out(_session(registry, session_id, user), grader.configured)


def submit_impression(
    session_id: str,
    payload: ImpressionIn,
    user: AuthUser = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
    engine: CaseEngineService = Depends(get_engine),
) -> SubmitOut:
    session = _session(registry, session_id, user)
    try:
        result = engine.submit(session, payload.text)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (InvalidTransition, AttemptInProgress) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SubmitOut(
        evaluation=_evaluation_out(result),
        session=session_out(session, engine.grader.configured),
    )


def give_up(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
    engine: CaseEngineService = Depends(get_engine),
) -> SessionOut:
    session = _session(registry, session_id, user)
    try:
        engine.give_up(session)
    except (InvalidTransition, AttemptInProgress) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session_out(session, engine.grader.configured)


def reset(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
    engine: CaseEngineService = Depends(get_engine),
) -> SessionOut:
    session = _session(registry, session_id, user)
    try:
        engine.reset(session)
    except AttemptInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session_out(session, engine.grader.configured)
