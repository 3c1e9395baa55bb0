# agency_api/schemas/auth.py

from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional

from agency_api.utils.security import normalize_email


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=1024)
    remember_me: bool = False

    @field_validator("email")
    @classmethod
    def normalize(cls, value: str) -> str:
        return normalize_email(value)


class LoginResponse(BaseModel):
    success: bool = True
    email: str
    expires_at: str


class SessionResponse(BaseModel):
    ok: bool
    email: Optional[str] = None
    role: Optional[str] = None
    permissions: Dict[str, bool] = {}
