from fastapi import APIRouter

from radsim.api.controller.user_controller import set_role
from radsim.schema.auth import UserOut

router = APIRouter(prefix="/users", tags=["users"])

router.put("/{user_id}/role", response_model=UserOut)(set_role)
