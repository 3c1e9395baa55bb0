# agency_api/models/admin.py

import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from agency_api.utils.dates import utcnow
from agency_api.utils.database import Base


class Role(str, enum.Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class Capability(str, enum.Enum):
    """Functional areas of the admin panel an account can be granted."""
    LEADS = "leads"
    CUSTOMERS = "customers"
    ANALYTICS = "analytics"
    MANAGE_USERS = "manage_users"


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)   # stored lowercase
    password_hash = Column(String, nullable=False)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default=Role.ADMIN.value)
    permissions = Column(JSON, nullable=False, default=dict)             # {"leads": true, ...}
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class AdminSession(Base):
    __tablename__ = "admin_sessions"

    token = Column(String(64), primary_key=True)
    email = Column(String(255), index=True, nullable=False)
    remember = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), index=True, nullable=False)
