"""
Client and Freelancer models.
"""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Text, Uuid

from .base import Base, utcnow


class Client(Base):
    """A customer of the studio."""
    
    __tablename__ = "clients"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Freelancer(Base):
    """External crew member hired per event."""
    
    __tablename__ = "freelancers"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    
    full_name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    rate = Column(Numeric(12, 2), nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
