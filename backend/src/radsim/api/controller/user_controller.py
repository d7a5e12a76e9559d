from uuid import UUID

from fastapi import Depends, HTTPException

from radsim.api.services.auth_service import AuthService
from radsim.schema.auth import AuthUser, RoleUpdateIn
from radsim.utils.auth import get_auth_service, require_admin


def set_role(
    user_id: UUID,
    payload: RoleUpdateIn,
    admin: AuthUser = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    if str(user_id) == admin.id and payload.role != "admin":
        raise HTTPException(status_code=400, detail="Admins cannot demote themselves")
    try:
        return auth.set_role(str(user_id), payload.role)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
