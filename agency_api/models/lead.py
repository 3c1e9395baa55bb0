# agency_api/models/lead.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Float, JSON, ForeignKey
from agency_api.utils.dates import utcnow
from agency_api.utils.database import Base

LEAD_STATUSES = ("new", "contacted", "qualified", "converted", "lost")
ACTIVITY_TYPES = ("call", "email", "meeting", "note", "status_change", "task", "quote_sent", "contract_sent")
QUOTE_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    company_name = Column(String(255), nullable=True)
    company_size = Column(String(50), nullable=True)
    package_interest = Column(String(100), nullable=True)
    pain_points = Column(JSON, nullable=True)               # list of strings
    current_website_status = Column(String(100), nullable=True)
    message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="new", index=True)
    assigned_to = Column(String(255), nullable=True)        # admin e-mail

    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    utm_term = Column(String(255), nullable=True)
    utm_content = Column(String(255), nullable=True)
    referrer = Column(String(1000), nullable=True)
    landing_path = Column(String(1000), nullable=True)

    vat_number = Column(String(20), nullable=True)
    company_address = Column(String(500), nullable=True)
    company_postal_code = Column(String(20), nullable=True)
    company_city = Column(String(100), nullable=True)
    company_country = Column(String(100), nullable=True)
    company_website = Column(String(500), nullable=True)

    created_by = Column(String(255), nullable=True)         # set for leads entered by an admin
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class LeadActivity(Base):
    __tablename__ = "lead_activities"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), index=True, nullable=False)
    activity_type = Column(String(30), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    created_by = Column(String(255), nullable=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class LeadAttachment(Base):
    __tablename__ = "lead_attachments"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), index=True, nullable=False)
    activity_id = Column(Integer, ForeignKey("lead_activities.id", ondelete="SET NULL"), nullable=True)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    storage_key = Column(String(500), nullable=False)       # path inside the blob storage
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    uploaded_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class LeadQuote(Base):
    __tablename__ = "lead_quotes"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), index=True, nullable=False)
    quote_data = Column(JSON, nullable=False)               # quote builder output
    total_price = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default="draft")
    notes = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
