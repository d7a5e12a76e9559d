from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Literal, Optional
from datetime import datetime

from radsim.utils.password import check_password_rules

Role = Literal["user", "admin"]


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(..., max_length=256)

    @field_validator("password")
    @classmethod
    def _rules(cls, v: str) -> str:
        return check_password_rules(v)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class AuthUser(BaseModel):
    id: str
    email: EmailStr
    role: Role = "user"


class UserOut(BaseModel):
    id: str
    email: EmailStr
    role: Role
    is_active: bool
    created_at: Optional[datetime] = None


class TokensOut(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class AuthOut(BaseModel):
    user: UserOut
    tokens: TokensOut


class RefreshIn(BaseModel):
    refresh_token: str


class PasswordResetRequestIn(BaseModel):
    email: EmailStr


class PasswordResetConfirmIn(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., max_length=256)

    @field_validator("new_password")
    @classmethod
    def _rules(cls, v: str) -> str:
        return check_password_rules(v)


class PasswordUpdateIn(BaseModel):
    new_password: str = Field(..., max_length=256)

    @field_validator("new_password")
    @classmethod
    def _rules(cls, v: str) -> str:
        return check_password_rules(v)


class RoleUpdateIn(BaseModel):
    role: Role


class MessageOut(BaseModel):
    message: str
