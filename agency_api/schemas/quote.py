# agency_api/schemas/quote.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime

QuoteStatus = Literal["draft", "sent", "accepted", "rejected", "expired"]


class QuoteSave(BaseModel):
    """Output of the quote builder."""
    model_config = ConfigDict(extra="forbid")

    quote_data: Dict[str, Any]
    total_price: float = Field(..., gt=0)
    status: QuoteStatus = "draft"
    notes: Optional[str] = Field(None, max_length=5000)


class QuoteStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: QuoteStatus


class Quote(BaseModel):
    id: int
    lead_id: int
    quote_data: Dict[str, Any]
    total_price: float
    status: str
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class QuoteEnvelope(BaseModel):
    quote: Optional[Quote] = None
