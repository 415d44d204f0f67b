"""
Per-entity sync handlers.

``HANDLERS`` binds every ``EntityType`` to exactly one handler class; the
module refuses to import if a type is left without a handler.
"""

from typing import Dict, Type

from .base import EntitySyncHandler, EntityType, SyncedSummary, SyncOperation, TabWrite
from .client import ClientHandler
from .event import EventHandler, payment_status
from .payments import FreelancerPaymentHandler, PaymentHandler, StaffPaymentHandler
from .records import AccountingHandler, ExpenseHandler, FreelancerHandler, StaffHandler
from .task import TaskHandler


HANDLERS: Dict[EntityType, Type[EntitySyncHandler]] = {
    handler.entity_type: handler
    for handler in (
        ClientHandler,
        EventHandler,
        TaskHandler,
        ExpenseHandler,
        StaffHandler,
        FreelancerHandler,
        PaymentHandler,
        StaffPaymentHandler,
        FreelancerPaymentHandler,
        AccountingHandler,
    )
}

_missing = set(EntityType) - set(HANDLERS)
if _missing:
    raise ImportError(f"No sync handler registered for: {sorted(t.value for t in _missing)}")


__all__ = [
    "HANDLERS",
    "EntitySyncHandler",
    "EntityType",
    "SyncedSummary",
    "SyncOperation",
    "TabWrite",
    "payment_status",
]
