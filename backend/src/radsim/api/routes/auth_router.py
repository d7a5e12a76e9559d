from fastapi import APIRouter, status

from radsim.api.controller.auth_controller import (
    confirm_password_reset,
    login,
    logout,
    me,
    refresh,
    register,
    request_password_reset,
    update_password,
)
from radsim.schema.auth import AuthOut, AuthUser, MessageOut, TokensOut, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])

router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)(register)
router.post("/login", response_model=AuthOut)(login)
router.post("/refresh", response_model=TokensOut)(refresh)
router.post("/logout", response_model=MessageOut)(logout)
router.get("/me", response_model=AuthUser)(me)
router.post("/password/reset", response_model=MessageOut)(request_password_reset)
router.post("/password/reset/confirm", response_model=MessageOut)(confirm_password_reset)
router.put("/password", response_model=MessageOut)(update_password)
