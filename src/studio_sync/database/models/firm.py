"""
Firm (tenant) model and firm-level membership and billing records.
"""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Text, Uuid

from .base import Base, utcnow


class Firm(Base):
    """
    A tenant: one studio with its own spreadsheet and calendar.
    
    ``spreadsheet_id`` and ``calendar_id`` are set at provisioning and are the
    only references to the firm's external resources.
    """
    
    __tablename__ = "firms"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    
    name = Column(String(255), nullable=False)
    tagline = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    contact_phone = Column(String(20), nullable=True)
    contact_email = Column(String(255), nullable=True)
    header_left_content = Column(Text, nullable=True)
    footer_content = Column(Text, nullable=True)
    
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    
    # External resources
    spreadsheet_id = Column(String(255), nullable=True)
    calendar_id = Column(String(255), nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    def __repr__(self):
        return f"<Firm(id={self.id}, name='{self.name}')>"


class FirmMember(Base):
    """Membership of a user in a firm."""
    
    __tablename__ = "firm_members"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False, default="member")
    created_at = Column(DateTime, default=utcnow, nullable=False)


class FirmPayment(Base):
    """Subscription payment made by a firm."""
    
    __tablename__ = "firm_payments"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(50), nullable=False, default="pending")
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
