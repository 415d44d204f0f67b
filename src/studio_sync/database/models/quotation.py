"""
Quotation and pricing configuration records.
"""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Numeric, Uuid

from .base import Base, utcnow


class Quotation(Base):
    """Price quote sent to a client."""
    
    __tablename__ = "quotations"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True)
    
    title = Column(String(255), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)


class PricingConfig(Base):
    """Firm-specific pricing settings used by quotations."""
    
    __tablename__ = "pricing_config"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    settings = Column(JSON, nullable=False, default=dict)
    
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
