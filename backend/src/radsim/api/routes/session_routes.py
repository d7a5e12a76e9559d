from fastapi import APIRouter

from radsim.api.controller.session_controller import (
    get_session,
    give_up,
    open_session,
    reset,
    submit_impression,
)
from radsim.schema.session_schema import SessionOut, SubmitOut

router = APIRouter(tags=["sessions"])

router.post("/cases/{case_id}/sessions", response_model=SessionOut, status_code=201)(open_session)
router.get("/sessions/{session_id}", response_model=SessionOut)(get_session)
router.post("/sessions/{session_id}/impressions", response_model=SubmitOut)(submit_impression)
router.post("/sessions/{session_id}/give-up", response_model=SessionOut)(give_up)
router.post("/sessions/{session_id}/reset", response_model=SessionOut)(reset)
