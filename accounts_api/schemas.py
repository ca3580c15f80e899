from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from typing import List, Optional, Union


def numeric_to_str(value):
    # all-digit codes may arrive as JSON numbers
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class SignupRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    email: Optional[str] = None
    token: Optional[str] = None

    @field_validator("token", mode="before")
    @classmethod
    def token_as_str(cls, value):
        return numeric_to_str(value)


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    token: Optional[str] = None
    password: Optional[str] = None

    @field_validator("token", mode="before")
    @classmethod
    def token_as_str(cls, value):
        return numeric_to_str(value)


class RestoreAccountRequest(BaseModel):
    user_id: Optional[Union[int, str]] = None


class Message(BaseModel):
    message: str


class Error(BaseModel):
    error: str


class Errors(BaseModel):
    errors: List[str]


class User(BaseModel):
    id: int
    username: str
    email: str
    verified: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    token: str
    user: User
    is_admin: bool
    soft_deleted: bool
