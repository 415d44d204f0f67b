"""
User and Profile models.

``users`` holds login identities; ``profiles`` holds a person's membership data
for the firm they belong to. Staff members of a firm are profiles.
"""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid

from .base import Base, utcnow


class User(Base):
    """Login identity."""
    
    __tablename__ = "users"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Profile(Base):
    """
    Firm-scoped profile of a user.
    
    ``firm_id`` is the firm the profile was created for; ``current_firm_id`` is
    the firm the user is currently working in.
    """
    
    __tablename__ = "profiles"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    
    full_name = Column(String(255), nullable=True)
    mobile_number = Column(String(20), nullable=True)
    role = Column(String(50), nullable=True)
    
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=True, index=True)
    current_firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=True, index=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    def __repr__(self):
        return f"<Profile(id={self.id}, full_name='{self.full_name}', firm_id={self.firm_id})>"
