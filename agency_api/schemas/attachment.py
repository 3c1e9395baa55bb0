# agency_api/schemas/attachment.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class Attachment(BaseModel):
    id: int
    lead_id: int
    activity_id: Optional[int] = None
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    description: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class CustomerAttachment(BaseModel):
    id: int
    customer_id: int
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    description: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }
