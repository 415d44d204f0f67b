"""
Task model - work items assigned to staff or freelancers.
"""

import uuid

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Numeric, Text, Uuid

from .base import Base, utcnow


class Task(Base):
    """Work item, optionally linked to a client and an event."""
    
    __tablename__ = "tasks"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    task_type = Column(String(50), nullable=True)
    status = Column(String(50), nullable=False, default="Pending")
    priority = Column(String(20), nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)
    due_date = Column(Date, nullable=True)
    
    assigned_to = Column(Uuid, ForeignKey("profiles.id"), nullable=True)
    freelancer_id = Column(Uuid, ForeignKey("freelancers.id"), nullable=True)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
