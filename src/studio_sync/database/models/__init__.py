"""
SQLAlchemy models for the multi-tenant studio application.

Only the tables and columns read or written by provisioning, entity sync
and purge are modelled here.
"""

from .base import Base, utcnow
from .user import User, Profile
from .firm import Firm, FirmMember, FirmPayment
from .subscription import FirmSubscription
from .client import Client, Freelancer
from .event import Event, EventStaffAssignment, EventAssignmentRate, EventClosingBalance
from .finance import Payment, StaffPayment, FreelancerPayment, Expense, AccountingEntry
from .task import Task
from .quotation import Quotation, PricingConfig
from .wa_session import WaSession

__all__ = [
    "Base",
    "utcnow",
    "User",
    "Profile",
    "Firm",
    "FirmMember",
    "FirmPayment",
    "FirmSubscription",
    "Client",
    "Freelancer",
    "Event",
    "EventStaffAssignment",
    "EventAssignmentRate",
    "EventClosingBalance",
    "Payment",
    "StaffPayment",
    "FreelancerPayment",
    "Expense",
    "AccountingEntry",
    "Task",
    "Quotation",
    "PricingConfig",
    "WaSession",
]
