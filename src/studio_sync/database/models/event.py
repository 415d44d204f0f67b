"""
Event model and per-event crew assignment, rate and closing-balance records.
"""

import uuid

from sqlalchemy import Column, String, Boolean, Date, DateTime, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Event(Base):
    """
    A booked shoot. Multi-day events have ``total_days`` > 1 and one set of
    crew assignments per day.
    """
    
    __tablename__ = "events"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    
    title = Column(String(255), nullable=True)
    event_type = Column(String(50), nullable=True)
    event_date = Column(Date, nullable=True)
    venue = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    
    storage_disk = Column(String(100), nullable=True)
    storage_size = Column(String(50), nullable=True)
    
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    advance_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_days = Column(Integer, nullable=False, default=1)
    
    photo_editing_status = Column(Boolean, nullable=False, default=False)
    video_editing_status = Column(Boolean, nullable=False, default=False)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    client = relationship("Client", lazy="joined")
    
    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}', type={self.event_type})>"


class EventStaffAssignment(Base):
    """Crew member assigned to an event day, either a staff profile or a freelancer."""
    
    __tablename__ = "event_staff_assignments"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=False, index=True)
    staff_id = Column(Uuid, ForeignKey("profiles.id"), nullable=True, index=True)
    freelancer_id = Column(Uuid, ForeignKey("freelancers.id"), nullable=True, index=True)
    
    role = Column(String(50), nullable=False)
    day_number = Column(Integer, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)


class EventAssignmentRate(Base):
    """Agreed rate for a crew member on an event day."""
    
    __tablename__ = "event_assignment_rates"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=False, index=True)
    staff_id = Column(Uuid, ForeignKey("profiles.id"), nullable=True)
    freelancer_id = Column(Uuid, ForeignKey("freelancers.id"), nullable=True)
    
    role = Column(String(50), nullable=True)
    day_number = Column(Integer, nullable=True)
    rate = Column(Numeric(12, 2), nullable=False, default=0)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)


class EventClosingBalance(Base):
    """Amount written off when an event's account is closed."""
    
    __tablename__ = "event_closing_balances"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=False, index=True)
    closing_amount = Column(Numeric(12, 2), nullable=False, default=0)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
