# agency_api/schemas/customer.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from agency_api.schemas.lead import required

ProjectStatus = Literal["new", "in_progress", "review", "completed", "on_hold", "canceled"]
UpdateType = Literal["progress", "milestone", "issue", "note", "change"]


class CustomerPatch(BaseModel):
    """Fields an admin may edit on a customer; anything else is rejected."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    company_name: Optional[str] = Field(None, max_length=255)
    company_size: Optional[str] = Field(None, max_length=50)
    vat_number: Optional[str] = Field(None, max_length=20)
    company_address: Optional[str] = Field(None, max_length=500)
    company_postal_code: Optional[str] = Field(None, max_length=20)
    company_city: Optional[str] = Field(None, max_length=100)
    company_country: Optional[str] = Field(None, max_length=100)
    company_website: Optional[str] = Field(None, max_length=500)
    bank_account: Optional[str] = Field(None, max_length=34)
    package_interest: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = Field(None, max_length=5000)
    assigned_to: Optional[str] = Field(None, max_length=255)
    approved_quote: Optional[Dict[str, Any]] = None
    quote_total: Optional[float] = Field(None, ge=0)
    quote_status: Optional[str] = Field(None, max_length=20)
    project_status: Optional[ProjectStatus] = None

    @field_validator("name", "email", "project_status")
    @classmethod
    def not_null(cls, value, info):
        return required(value, info.field_name)


class Customer(BaseModel):
    id: int
    lead_id: Optional[int] = None
    name: str
    email: str
    phone: Optional[str] = None
    company_name: Optional[str] = None
    company_size: Optional[str] = None
    vat_number: Optional[str] = None
    company_address: Optional[str] = None
    company_postal_code: Optional[str] = None
    company_city: Optional[str] = None
    company_country: Optional[str] = None
    company_website: Optional[str] = None
    bank_account: Optional[str] = None
    package_interest: Optional[str] = None
    pain_points: Optional[List[str]] = None
    current_website_status: Optional[str] = None
    message: Optional[str] = None
    approved_quote: Optional[Dict[str, Any]] = None
    quote_total: Optional[float] = None
    quote_status: Optional[str] = None
    assigned_to: Optional[str] = None
    project_status: str
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    converted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class CustomerUpdateCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=10000)
    update_type: UpdateType = "note"
    progress_percentage: Optional[int] = Field(None, ge=0, le=100)
    milestone: Optional[str] = Field(None, max_length=255)


class CustomerUpdate(BaseModel):
    id: int
    customer_id: int
    title: str
    description: str
    update_type: str
    progress_percentage: Optional[int] = None
    milestone: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
