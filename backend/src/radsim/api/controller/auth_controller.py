# -*- coding: utf-8 -*-
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from radsim.api.services.auth_service import AuthService
from radsim.core import config
from radsim.core.rate_limit import limiter
from radsim.schema.auth import (
    AuthUser,
    LoginIn,
    PasswordResetConfirmIn,
    PasswordResetRequestIn,
    PasswordUpdateIn,
    RefreshIn,
    RegisterIn,
)
from radsim.utils.auth import extract_bearer, get_auth_service, get_current_user


@limiter.limit(config.AUTH_RATE_LIMIT)
def register(request: Request, payload: RegisterIn, auth: AuthService = Depends(get_auth_service)):
    try:
        return auth.register(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@limiter.limit(config.AUTH_RATE_LIMIT)
def login(request: Request, payload: LoginIn, auth: AuthService = Depends(get_auth_service)):
    return auth.login(payload)


def refresh(payload: RefreshIn, auth: AuthService = Depends(get_auth_service)):
    return auth.refresh(payload.refresh_token)


def logout(
    authorization: Optional[str] = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.logout(extract_bearer(authorization))


def me(user: AuthUser = Depends(get_current_user)):
    return user


@limiter.limit(config.AUTH_RATE_LIMIT)
def request_password_reset(
    request: Request,
    payload: PasswordResetRequestIn,
    auth: AuthService = Depends(get_auth_service),
):
    return auth.request_password_reset(payload.email)


def confirm_password_reset(payload: PasswordResetConfirmIn, auth: AuthService = Depends(get_auth_service)):
    try:
        return auth.confirm_password_reset(payload.token, payload.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def update_password(
    payload: PasswordUpdateIn,
    user: AuthUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    try:
        return auth.update_password(user.id, payload.new_password)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
