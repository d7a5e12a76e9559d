# -*- coding: utf-8 -*-
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from fastapi import HTTPException

from radsim.core import config
from radsim.core.user_repo import UserRepo
from radsim.database.connection import Database
from radsim.schema.auth import (
    AuthOut,
    AuthUser,
    LoginIn,
    RegisterIn,
    TokensOut,
    UserOut,
)
from radsim.utils.jwt import (
    create_access_token,
    create_refresh_token,
    hash_token,
    verify_access_token,
    verify_refresh_token,
)
from radsim.utils.password import hash_password, verify_password

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists for this email, a password reset link has been sent."

ResetNotifier = Callable[[str, str], None]


def log_reset_link(email: str, url: str) -> None:
    """Default delivery for reset links until a mail transport is wired in."""
    logger.info("Password reset link for %s: %s", email, url)


def _user_out(u: Dict) -> UserOut:
    return UserOut(
        id=u["id"],
        email=u["email"],
        role=u.get("role") or "user",
        is_active=u["is_active"],
        created_at=u.get("created_at"),
    )


class AuthService:
    def __init__(self, db: Database, notifier: ResetNotifier = log_reset_link):
        self.db = db
        self.notifier = notifier

    def register(self, payload: RegisterIn) -> UserOut:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                if UserRepo.get_user_by_email(cur, payload.email):
                    raise ValueError("Email already in use")
                # new accounts are always learners; admins are promoted explicitly
                user = UserRepo.insert_user(
                    cur, email=payload.email, password_hash=hash_password(payload.password)
                )
        logger.info("User registered id=%s", user["id"])
        return _user_out(user)

    def login(self, payload: LoginIn) -> AuthOut:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                u = UserRepo.get_user_by_email(cur, payload.email)
                if not u or not u["is_active"] or not verify_password(u["password_hash"], payload.password):
                    raise HTTPException(status_code=400, detail="Invalid email or password")

                refresh = create_refresh_token({"user_id": u["id"]})
                exp = datetime.now(timezone.utc) + timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS)
                sid = UserRepo.add_session(cur, user_id=u["id"], token_hash=hash_token(refresh), expires_at=exp)

        access = create_access_token({"user_id": u["id"], "sid": sid})
        logger.info("Login ok user_id=%s session_id=%s", u["id"], sid)
        return AuthOut(user=_user_out(u), tokens=TokensOut(access_token=access, refresh_token=refresh))

    def refresh(self, refresh_token: str) -> TokensOut:
        payload = verify_refresh_token(refresh_token)
        if not payload:
            raise HTTPException(status_code=401, detail="Invalid or expired refresh token")
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                sess = UserRepo.get_session_by_token_hash(cur, hash_token(refresh_token))
        if not sess:
            raise HTTPException(status_code=401, detail="Session expired or signed out")
        sid = sess["id"]
        access = create_access_token({"user_id": payload["user_id"], "sid": sid})
        return TokensOut(access_token=access, refresh_token=refresh_token)

    def current_user(self, access_token: str) -> AuthUser:
        payload = verify_access_token(access_token)
        if not payload or "user_id" not in payload or "sid" not in payload:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        with self.db.connection() as conn:
            with conn.cursor() as cur:
                sess = UserRepo.get_active_session(cur, int(payload["sid"]))
                if not sess or sess["user_id"] != str(payload["user_id"]):
                    raise HTTPException(status_code=401, detail="Session expired or signed out")
                u = UserRepo.get_user_by_id(cur, sess["user_id"])

        if not u or not u["is_active"]:
            raise HTTPException(status_code=401, detail="User not found or inactive")
        return AuthUser(id=u["id"], email=u["email"], role=u.get("role") or "user")

    def logout(self, access_token: str) -> Dict[str, str]:
        payload = verify_access_token(access_token)
        if payload and "sid" in payload:
            with self.db.connection() as conn:
                with conn.cursor() as cur:
                    UserRepo.delete_session(cur, int(payload["sid"]))
        return {"message": "Signed out"}

    def request_password_reset(self, email: str) -> Dict[str, str]:
        token = secrets.token_urlsafe(32)
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                u = UserRepo.get_user_by_email(cur, email)
                if u and u["is_active"]:
                    exp = datetime.now(timezone.utc) + timedelta(minutes=config.PASSWORD_RESET_EXPIRE_MINUTES)
                    UserRepo.add_password_reset(cur, user_id=u["id"], token_hash=hash_token(token), expires_at=exp)
                else:
                    u = None
        if u:
            self.notifier(u["email"], f"{config.PASSWORD_RESET_URL}?token={token}")
        # same answer whether or not the account exists
        return {"message": RESET_REQUESTED_MESSAGE}

    def confirm_password_reset(self, token: str, new_password: str) -> Dict[str, str]:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                user_id = UserRepo.consume_password_reset(cur, hash_token(token))
                if not user_id:
                    raise ValueError("Reset link is invalid or has expired")
                UserRepo.update_password(cur, user_id, hash_password(new_password))
                UserRepo.delete_all_sessions_for_user(cur, user_id)
        logger.info("Password reset completed user_id=%s", user_id)
        return {"message": "Password updated. Please sign in again."}

    def update_password(self, user_id: str, new_password: str) -> Dict[str, str]:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                if not UserRepo.update_password(cur, user_id, hash_password(new_password)):
                    raise ValueError("User not found")
        return {"message": "Password updated"}

    def set_role(self, user_id: str, role: str) -> UserOut:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                if not UserRepo.update_role(cur, user_id, role):
                    raise ValueError("User not found")
                u: Optional[Dict] = UserRepo.get_user_by_id(cur, user_id)
        logger.info("Role of user %s set to %s", user_id, role)
        return _user_out(u)
