"""
Firm subscription state - drives trial expiry and purge eligibility.
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid

from .base import Base, utcnow


class FirmSubscription(Base):
    """
    Subscription record of a firm.
    
    A firm is expired when it never subscribed (``subscribed_once`` is False)
    and ``grace_until`` lies strictly in the past.
    """
    
    __tablename__ = "firm_subscriptions"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, unique=True, index=True)
    
    status = Column(String(50), nullable=False, default="trial")
    plan_type = Column(String(50), nullable=False, default="trial")
    subscribed_once = Column(Boolean, nullable=False, default=False)
    
    trial_start_at = Column(DateTime, nullable=True)
    trial_end_at = Column(DateTime, nullable=True)
    grace_until = Column(DateTime, nullable=True, index=True)
    subscription_start_at = Column(DateTime, nullable=True)
    subscription_end_at = Column(DateTime, nullable=True)
    last_payment_at = Column(DateTime, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    def __repr__(self):
        return (
            f"<FirmSubscription(firm_id={self.firm_id}, status={self.status}, "
            f"subscribed_once={self.subscribed_once}, grace_until={self.grace_until})>"
        )
