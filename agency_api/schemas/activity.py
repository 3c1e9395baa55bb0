# agency_api/schemas/activity.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Optional
from datetime import datetime

ActivityType = Literal["call", "email", "meeting", "note", "status_change", "task", "quote_sent", "contract_sent"]


class ActivityCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    activity_type: ActivityType
    title: str = Field(..., max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    summary: Optional[str] = Field(None, max_length=10000)
    duration_minutes: Optional[int] = Field(None, ge=0)
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Titel is verplicht en mag niet leeg zijn")
        return value

    @field_validator("description", "summary")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return value.strip() or None


class Activity(BaseModel):
    id: int
    lead_id: int
    activity_type: str
    title: str
    description: Optional[str] = None
    summary: Optional[str] = None
    duration_minutes: Optional[int] = None
    created_by: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
