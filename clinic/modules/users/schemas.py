# clinic/modules/users/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, SecretStr, field_validator

from clinic.modules.users.models import UserRole


class UserPublic(BaseModel):
    id: UUID
    email: EmailStr
    role: UserRole
    name: str
    phone: Optional[str] = None
    specialization: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    email: EmailStr
    password: SecretStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class TokenPair(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserPublic


LoginResponse = TokenPair
MeResponse = UserPublic
