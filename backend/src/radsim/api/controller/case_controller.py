import logging
from uuid import UUID

from fastapi import Depends, HTTPException, Query, Response

from radsim.core.case_store import CaseNotFound, CaseStore
from radsim.schema.auth import AuthUser
from radsim.schema.case_schema import (
    Case,
    CaseCreatedOut,
    CaseIn,
    CaseListOut,
    CaseStatus,
    CaseSummaryOut,
    CaseUpdate,
    CaseViewOut,
    CompletionIn,
    NeighborsOut,
)
from radsim.schema.session_schema import ProgressOut
from radsim.utils.auth import get_case_store, get_current_user, require_admin

logger = logging.getLogger(__name__)


def _load(store: CaseStore, case_id: UUID) -> Case:
    case = store.get_case(str(case_id))
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


def _learner_view(case: Case) -> CaseViewOut:
    return CaseViewOut(
        id=case.id,
        title=case.title,
        accession_number=case.accession_number,
        clinical_info=case.clinical_info,
        images=case.images,
        survey_url=case.survey_url,
        completed=case.completed,
        finding_count=len(case.gradable_findings),
    )


def list_cases(
    status: CaseStatus = Query("all"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: AuthUser = Depends(get_current_user),
    store: CaseStore = Depends(get_case_store),
) -> CaseListOut:
    cases = store.list_cases(status=status, limit=limit, offset=offset)
    items = [
        CaseSummaryOut(
            id=c.id,
            title=c.title,
            accession_number=c.accession_number,
            image_count=len(c.images),
            completed=c.completed,
            created_at=c.created_at,
        )
        for c in cases
    ]
    return CaseListOut(items=items, status=status, limit=limit, offset=offset)


def get_case(
    case_id: UUID,
    user: AuthUser = Depends(get_current_user),
    store: CaseStore = Depends(get_case_store),
):
    case = _load(store, case_id)
    # learners get the answer key through a resolved session only
    if user.role == "admin":
        return case
    return _learner_view(case)


def get_neighbors(
    case_id: UUID,
    user: AuthUser = Depends(get_current_user),
    store: CaseStore = Depends(get_case_store),
) -> NeighborsOut:
    try:
        prev_id, next_id = store.neighbors(str(case_id))
    except CaseNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return NeighborsOut(previous_id=prev_id, next_id=next_id)


def create_case(
    payload: CaseIn,
    admin: AuthUser = Depends(require_admin),
    store: CaseStore = Depends(get_case_store),
) -> CaseCreatedOut:
    case_id = store.create_case(payload.model_dump())
    logger.info("Admin %s created case %s", admin.id, case_id)
    return CaseCreatedOut(id=case_id)


def update_case(
    case_id: UUID,
    payload: CaseUpdate,
    admin: AuthUser = Depends(require_admin),
    store: CaseStore = Depends(get_case_store),
) -> Case:
    try:
        store.update_case(str(case_id), payload.model_dump(exclude_unset=True))
    except CaseNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _load(store, case_id)


def delete_case(
    case_id: UUID,
    admin: AuthUser = Depends(require_admin),
    store: CaseStore = Depends(get_case_store),
):
    try:
        store.delete_case(str(case_id))
    except CaseNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


def set_completion(
    case_id: UUID,
    payload: CompletionIn,
    user: AuthUser = Depends(get_current_user),
    store: CaseStore = Depends(get_case_store),
):
    try:
        store.set_completed(str(case_id), payload.completed)
    except CaseNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"id": str(case_id), "completed": payload.completed}


def get_progress(
    case_id: UUID,
    user: AuthUser = Depends(get_current_user),
    store: CaseStore = Depends(get_case_store),
) -> ProgressOut:
    row = store.get_progress(user_id=user.id, case_id=str(case_id))
    if not row:
        return ProgressOut(case_id=str(case_id))
    return ProgressOut(
        case_id=str(case_id),
        first_attempt=row.get("first_attempt"),
        second_attempt=row.get("second_attempt"),
        score=row.get("score"),
        completed=bool(row.get("completed")),
    )
