# agency_api/schemas/user.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, Optional
from datetime import datetime

from agency_api.models.admin import Capability
from agency_api.utils.security import is_valid_email


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().lower()
    if not is_valid_email(value):
        raise ValueError("Ongeldig e-mailadres")
    return value


class UserBase(BaseModel):
    """
    Fields shared by create and update payloads.
    """
    full_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class UserCreate(UserBase):
    """
    New admin account. The password is hashed before it is stored;
    capabilities not listed default to False.
    """
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str = Field(..., min_length=8, max_length=1024)
    permissions: Dict[Capability, bool] = {}

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return _check_email(value)


class UserUpdate(UserBase):
    """
    Partial update: only the fields sent are changed.
    """
    model_config = ConfigDict(extra="forbid")

    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8, max_length=1024)
    permissions: Optional[Dict[Capability, bool]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return _check_email(value)


class UserResponse(UserBase):
    """
    Account as returned by the API; permissions are already resolved
    (a super admin reports every capability as True).
    """
    id: int
    email: str
    role: str
    is_super_admin: bool
    permissions: Dict[str, bool]
    created_at: Optional[datetime] = None


class AssignableUser(BaseModel):
    email: str
    full_name: Optional[str] = None
