from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from radsim.api.services.auth_service import AuthService
from radsim.api.services.service_feedback.grader import CaseGrader
from radsim.api.services.service_training.case_engine import CaseEngineService, SessionRegistry
from radsim.core.case_store import CaseStore
from radsim.schema.auth import AuthUser


def extract_bearer(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing token")
    return token


# Collaborators are built once in main.py and parked on app.state.
def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_case_store(request: Request) -> CaseStore:
    return request.app.state.case_store


def get_grader(request: Request) -> CaseGrader:
    return request.app.state.grader


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


def get_engine(
    store: CaseStore = Depends(get_case_store),
    grader: CaseGrader = Depends(get_grader),
) -> CaseEngineService:
    return CaseEngineService(store, grader)


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> AuthUser:
    return auth.current_user(extract_bearer(authorization))


def require_role(*roles: str):
    def _dep(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=f"Access denied (role): {list(roles)}")
        return user
    return _dep


require_admin = require_role("admin")
