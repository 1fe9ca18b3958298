"""Pydantic schemas for registration, login and the current user.

Learn: Register and login share a response shape — the client gets a
token plus the user it belongs to, so the frontend can skip an extra
/auth/me round-trip right after signing in.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginRequest(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6)


class RegisterRequest(LoginRequest):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required for registration")
        return v


class UserInfo(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    token: str
    user: UserInfo
    expires_at: datetime


class MeResponse(UserInfo):
    is_email_verified: bool
    created_at: Optional[datetime] = None
