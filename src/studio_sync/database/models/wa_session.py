"""
Messaging session of a firm (WhatsApp connection state and signature texts).
"""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, Uuid

from .base import Base, utcnow


class WaSession(Base):
    """
    One messaging session per firm, keyed by the firm id.
    
    Created disconnected at provisioning; the messaging service connects it later.
    """
    
    __tablename__ = "wa_sessions"
    
    id = Column(Uuid, primary_key=True)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    
    firm_name = Column(String(255), nullable=True)
    firm_tagline = Column(String(255), nullable=True)
    contact_info = Column(Text, nullable=True)
    footer_signature = Column(Text, nullable=True)
    
    status = Column(String(50), nullable=False, default="disconnected")
    reconnect_enabled = Column(Boolean, nullable=False, default=False)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
