"""
Money movement records: client payments, crew payments, expenses and
accounting ledger entries.
"""

import uuid

from sqlalchemy import Column, String, Boolean, Date, DateTime, ForeignKey, Numeric, Text, Uuid

from .base import Base, utcnow


class Payment(Base):
    """Payment received from a client against an event."""
    
    __tablename__ = "payments"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=True, index=True)
    
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(50), nullable=True)
    payment_date = Column(Date, nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)


class StaffPayment(Base):
    """Salary paid to a staff member; mirrored as an expense row."""
    
    __tablename__ = "staff_payments"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    staff_id = Column(Uuid, ForeignKey("profiles.id"), nullable=True, index=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=True)
    
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_date = Column(Date, nullable=True)
    payment_method = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)


class FreelancerPayment(Base):
    """Fee paid to a freelancer; mirrored as an expense row."""
    
    __tablename__ = "freelancer_payments"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    freelancer_id = Column(Uuid, ForeignKey("freelancers.id"), nullable=True, index=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=True)
    
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_date = Column(Date, nullable=True)
    payment_method = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Expense(Base):
    """Business expense."""
    
    __tablename__ = "expenses"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=True)
    
    expense_date = Column(Date, nullable=True)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(50), nullable=True)
    receipt_url = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)


class AccountingEntry(Base):
    """Ledger entry (credit or debit) of the firm's books."""
    
    __tablename__ = "accounting_entries"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firm_id = Column(Uuid, ForeignKey("firms.id"), nullable=False, index=True)
    
    entry_type = Column(String(20), nullable=False)
    category = Column(String(100), nullable=True)
    subcategory = Column(String(100), nullable=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    entry_date = Column(Date, nullable=True)
    payment_method = Column(String(50), nullable=True)
    document_url = Column(Text, nullable=True)
    reflect_to_company = Column(Boolean, nullable=False, default=False)
    
    created_at = Column(DateTime, default=utcnow, nullable=False)
