# agency_api/schemas/lead.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime

from agency_api.utils.security import is_valid_email, is_valid_phone, sanitize_input

LeadStatus = Literal["new", "contacted", "qualified", "converted", "lost"]


def _email(value: str) -> str:
    value = value.strip().lower()
    if not is_valid_email(value):
        raise ValueError("Ongeldig e-mailadres formaat")
    return value


REQUIRED_MESSAGES = {
    "name": "Naam is verplicht",
    "email": "E-mailadres is verplicht",
    "status": "Status is verplicht",
    "project_status": "Projectstatus is verplicht",
    "daily_target_eur": "Dagdoel is verplicht",
    "weekly_target_eur": "Weekdoel is verplicht",
}


def required(value, field: str):
    if value is None:
        raise ValueError(REQUIRED_MESSAGES.get(field, f"{field} is verplicht"))
    return value


# ────────────── Shared fields ──────────────
class LeadBase(BaseModel):
    phone: Optional[str] = Field(None, max_length=50)
    company_name: Optional[str] = Field(None, max_length=255)
    company_size: Optional[str] = Field(None, max_length=50)
    package_interest: Optional[str] = Field(None, max_length=100)
    pain_points: Optional[List[str]] = None
    current_website_status: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = Field(None, max_length=5000)


class CompanyFields(BaseModel):
    vat_number: Optional[str] = Field(None, max_length=20)
    company_address: Optional[str] = Field(None, max_length=500)
    company_postal_code: Optional[str] = Field(None, max_length=20)
    company_city: Optional[str] = Field(None, max_length=100)
    company_country: Optional[str] = Field(None, max_length=100)
    company_website: Optional[str] = Field(None, max_length=500)


class UtmFields(BaseModel):
    utm_source: Optional[str] = Field(None, max_length=255)
    utm_medium: Optional[str] = Field(None, max_length=255)
    utm_campaign: Optional[str] = Field(None, max_length=255)
    utm_term: Optional[str] = Field(None, max_length=255)
    utm_content: Optional[str] = Field(None, max_length=255)
    referrer: Optional[str] = Field(None, max_length=1000)
    landing_path: Optional[str] = Field(None, max_length=1000)


# ────────────── Public lead form ──────────────
class LeadFormCreate(LeadBase, UtmFields):
    name: str = Field(..., max_length=255)
    email: str = Field(..., max_length=255)
    gdpr_consent: bool = False

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = sanitize_input(value)
        if not value:
            raise ValueError("Naam is verplicht")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _email(value)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: Optional[str]) -> Optional[str]:
        if value and not is_valid_phone(value):
            raise ValueError("Ongeldig telefoonnummer")
        return value or None

    @field_validator("company_name", "message", "current_website_status", "package_interest", "company_size")
    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return sanitize_input(value) or None

    @field_validator("pain_points")
    @classmethod
    def clean_list(cls, value: Optional[List[str]]) -> List[str]:
        return [p for p in (sanitize_input(v) for v in value or []) if p]

    @field_validator("gdpr_consent")
    @classmethod
    def check_consent(cls, value: bool) -> bool:
        if not value:
            raise ValueError("GDPR toestemming is verplicht")
        return value


# ────────────── Admin entry ──────────────
class AdminLeadCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=2, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    company_name: Optional[str] = Field(None, max_length=255)
    message: Optional[str] = Field(None, max_length=5000)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _email(value)


# ────────────── Update ──────────────
class LeadUpdate(LeadBase, CompanyFields):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    status: Optional[LeadStatus] = None
    assigned_to: Optional[str] = Field(None, max_length=255)

    # only sent fields are validated; null is refused on the NOT NULL columns
    @field_validator("name", "status")
    @classmethod
    def not_null(cls, value, info):
        return required(value, info.field_name)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> str:
        return _email(required(value, "email"))


# ────────────── Response ──────────────
class Lead(LeadBase, CompanyFields, UtmFields):
    id: int
    name: str
    email: str
    status: str
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class LeadIdResponse(BaseModel):
    success: bool = True
    lead_id: int
