"""
Payment handlers.

Client payments go to the Payments tab. Staff and freelancer payments are
salary costs and appear in the Expenses tab as synthetic rows keyed
``staff-payment-<id>`` / ``freelancer-payment-<id>``.
"""

from abc import abstractmethod
from typing import List, Optional

from studio_sync.database import structure
from studio_sync.database.models import Event, Freelancer, FreelancerPayment, Payment, Profile, StaffPayment

from .base import EntitySyncHandler, EntityType, TabWrite, amount, date_cell, name_or, today


class PaymentHandler(EntitySyncHandler):
    
    entity_type = EntityType.PAYMENT
    primary_tab = structure.PAYMENTS
    primary_headers = structure.PAYMENTS_HEADERS
    deleted_label = "Payment ₹0"
    
    def load(self, entity_id) -> Payment:
        return self._get(Payment, entity_id, Payment.firm_id == self.firm_id)
    
    def build_writes(self, payment: Payment) -> List[TabWrite]:
        event_title = "Unknown Event"
        client_name = "Unknown Client"
        
        if payment.event_id:
            event = self.db.get(Event, payment.event_id)
            if event is not None:
                event_title = name_or(event.title, "Unknown Event")
                client_name = name_or(event.client.name if event.client else None, "Unknown Client")
        
        row = [
            str(payment.id),
            event_title,
            client_name,
            amount(payment.amount),
            payment.payment_method or "Cash",
            date_cell(payment.payment_date, default=today()),
            payment.reference_number or "",
            payment.notes or "",
            date_cell(payment.created_at, default=today()),
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, payment: Payment) -> str:
        return f"Payment ₹{amount(payment.amount)}"


class _SalaryExpenseHandler(EntitySyncHandler):
    """Shared logic of staff and freelancer payments."""
    
    primary_tab = structure.EXPENSES
    primary_headers = structure.EXPENSES_HEADERS
    
    key_prefix: str
    payee_kind: str
    
    def row_key(self, entity_id: str) -> str:
        return f"{self.key_prefix}-{entity_id}"
    
    @abstractmethod
    def payee_name(self, payment) -> Optional[str]:
        """Display name of the person paid, if known."""
    
    def build_writes(self, payment) -> List[TabWrite]:
        name = name_or(self.payee_name(payment), f"Unknown {self.payee_kind}")
        description = f"{self.payee_kind} payment to {name}"
        if payment.description:
            description = f"{description} - {payment.description}"
        
        event = self.db.get(Event, payment.event_id) if payment.event_id else None
        
        row = [
            self.row_key(str(payment.id)),
            date_cell(payment.payment_date),
            "Salary",
            name,
            description,
            amount(payment.amount),
            payment.payment_method or "Cash",
            (event.title or "") if event else "",
            "",
            f"{self.payee_kind} Payment ID: {payment.id}",
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, payment) -> str:
        return f"{self.payee_kind} payment ₹{amount(payment.amount)}"


class StaffPaymentHandler(_SalaryExpenseHandler):
    
    entity_type = EntityType.STAFF_PAYMENT
    key_prefix = "staff-payment"
    payee_kind = "Staff"
    deleted_label = "Staff payment ₹0"
    
    def load(self, entity_id) -> StaffPayment:
        return self._get(StaffPayment, entity_id, StaffPayment.firm_id == self.firm_id)
    
    def payee_name(self, payment: StaffPayment) -> Optional[str]:
        profile = self.db.get(Profile, payment.staff_id) if payment.staff_id else None
        return profile.full_name if profile else None


class FreelancerPaymentHandler(_SalaryExpenseHandler):
    
    entity_type = EntityType.FREELANCER_PAYMENT
    key_prefix = "freelancer-payment"
    payee_kind = "Freelancer"
    deleted_label = "Freelancer payment ₹0"
    
    def load(self, entity_id) -> FreelancerPayment:
        return self._get(FreelancerPayment, entity_id, FreelancerPayment.firm_id == self.firm_id)
    
    def payee_name(self, payment: FreelancerPayment) -> Optional[str]:
        freelancer = self.db.get(Freelancer, payment.freelancer_id) if payment.freelancer_id else None
        return freelancer.full_name if freelancer else None
