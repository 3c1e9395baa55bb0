# agency_api/models/customer.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Float, JSON, ForeignKey
from agency_api.utils.dates import utcnow
from agency_api.utils.database import Base

PROJECT_STATUSES = ("new", "in_progress", "review", "completed", "on_hold", "canceled")
UPDATE_TYPES = ("progress", "milestone", "issue", "note", "change")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="SET NULL"), unique=True, nullable=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    company_name = Column(String(255), nullable=True)
    company_size = Column(String(50), nullable=True)
    vat_number = Column(String(20), nullable=True)
    company_address = Column(String(500), nullable=True)
    company_postal_code = Column(String(20), nullable=True)
    company_city = Column(String(100), nullable=True)
    company_country = Column(String(100), nullable=True)
    company_website = Column(String(500), nullable=True)
    bank_account = Column(String(34), nullable=True)

    package_interest = Column(String(100), nullable=True)
    pain_points = Column(JSON, nullable=True)
    current_website_status = Column(String(100), nullable=True)
    message = Column(Text, nullable=True)

    approved_quote = Column(JSON, nullable=True)
    quote_total = Column(Float, nullable=True)
    quote_status = Column(String(20), nullable=True)
    assigned_to = Column(String(255), nullable=True)
    project_status = Column(String(20), nullable=False, default="new")

    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    utm_term = Column(String(255), nullable=True)
    utm_content = Column(String(255), nullable=True)
    referrer = Column(String(1000), nullable=True)
    landing_path = Column(String(1000), nullable=True)

    converted_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class CustomerUpdate(Base):
    __tablename__ = "customer_updates"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    update_type = Column(String(20), nullable=False, default="note")
    progress_percentage = Column(Integer, nullable=True)
    milestone = Column(String(255), nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class CustomerAttachment(Base):
    __tablename__ = "customer_attachments"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), index=True, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    storage_key = Column(String(500), nullable=False)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    uploaded_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class SalesTarget(Base):
    """Single row holding the daily and weekly revenue targets."""
    __tablename__ = "sales_targets"

    id = Column(Integer, primary_key=True, index=True)
    daily_target_eur = Column(Float, nullable=False, default=0)
    weekly_target_eur = Column(Float, nullable=False, default=0)
    updated_by = Column(String(255), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
