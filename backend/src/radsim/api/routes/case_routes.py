from fastapi import APIRouter

from radsim.api.controller.case_controller import (
    create_case,
    delete_case,
    get_case,
    get_neighbors,
    get_progress,
    list_cases,
    set_completion,
    update_case,
)
from radsim.schema.case_schema import Case, CaseCreatedOut, CaseListOut, NeighborsOut
from radsim.schema.session_schema import ProgressOut

router = APIRouter(prefix="/cases", tags=["cases"])

router.get("", response_model=CaseListOut)(list_cases)
router.post("", response_model=CaseCreatedOut, status_code=201)(create_case)
router.get("/{case_id}")(get_case)
router.put("/{case_id}", response_model=Case)(update_case)
router.delete("/{case_id}", status_code=204)(delete_case)
router.patch("/{case_id}/completion")(set_completion)
router.get("/{case_id}/neighbors", response_model=NeighborsOut)(get_neighbors)
router.get("/{case_id}/progress", response_model=ProgressOut)(get_progress)
