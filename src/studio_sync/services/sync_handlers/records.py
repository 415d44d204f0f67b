"""
Handlers for expenses, staff, freelancers and accounting entries.
"""

import re
from typing import List

from sqlalchemy import or_

from studio_sync.database import structure
from studio_sync.database.models import AccountingEntry, Event, Expense, Freelancer, Profile

from .base import EntitySyncHandler, EntityType, TabWrite, amount, date_cell, yes_no


SALARY_PAYEE = re.compile(r"(?:Staff|Freelancer) payment to (.+)", re.IGNORECASE)


class ExpenseHandler(EntitySyncHandler):
    
    entity_type = EntityType.EXPENSE
    primary_tab = structure.EXPENSES
    primary_headers = structure.EXPENSES_HEADERS
    deleted_label = 'Expense "Deleted Expense"'
    
    def load(self, entity_id) -> Expense:
        return self._get(Expense, entity_id, Expense.firm_id == self.firm_id)
    
    @staticmethod
    def vendor(expense: Expense) -> str:
        """Salary expenses name their payee in the description."""
        if expense.category == "Salary" and expense.description:
            match = SALARY_PAYEE.search(expense.description)
            if match:
                return match.group(1).strip()
        return "N/A"
    
    def build_writes(self, expense: Expense) -> List[TabWrite]:
        event = self.db.get(Event, expense.event_id) if expense.event_id else None
        
        row = [
            str(expense.id),
            date_cell(expense.expense_date),
            expense.category or "",
            self.vendor(expense),
            expense.description or "",
            amount(expense.amount),
            expense.payment_method or "Cash",
            (event.title or "") if event else "",
            yes_no(expense.receipt_url),
            expense.notes or "",
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, expense: Expense) -> str:
        return f'Expense "{expense.description or ""}"'


class StaffHandler(EntitySyncHandler):
    """Staff are the profiles belonging to the firm."""
    
    entity_type = EntityType.STAFF
    primary_tab = structure.STAFF
    primary_headers = structure.STAFF_HEADERS
    deleted_label = 'Staff "Deleted Staff"'
    
    def load(self, entity_id) -> Profile:
        return self._get(
            Profile, entity_id,
            or_(Profile.firm_id == self.firm_id, Profile.current_firm_id == self.firm_id),
        )
    
    def build_writes(self, profile: Profile) -> List[TabWrite]:
        row = [
            str(profile.id),
            profile.full_name or "",
            profile.role or "",
            profile.mobile_number or "",
            date_cell(profile.created_at),
            "",
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, profile: Profile) -> str:
        return f'Staff "{profile.full_name}"'


class FreelancerHandler(EntitySyncHandler):
    
    entity_type = EntityType.FREELANCER
    primary_tab = structure.FREELANCERS
    primary_headers = structure.FREELANCERS_HEADERS
    deleted_label = 'Freelancer "Deleted Freelancer"'
    
    def load(self, entity_id) -> Freelancer:
        return self._get(Freelancer, entity_id, Freelancer.firm_id == self.firm_id)
    
    def build_writes(self, freelancer: Freelancer) -> List[TabWrite]:
        row = [
            str(freelancer.id),
            freelancer.full_name,
            freelancer.role or "",
            freelancer.phone or "",
            freelancer.email or "",
            amount(freelancer.rate),
            "",
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, freelancer: Freelancer) -> str:
        return f'Freelancer "{freelancer.full_name}"'


class AccountingHandler(EntitySyncHandler):
    
    entity_type = EntityType.ACCOUNTING
    primary_tab = structure.ACCOUNTING
    primary_headers = structure.ACCOUNTING_HEADERS
    deleted_label = 'Accounting entry "Deleted Entry"'
    
    def load(self, entity_id) -> AccountingEntry:
        return self._get(AccountingEntry, entity_id, AccountingEntry.firm_id == self.firm_id)
    
    def build_writes(self, entry: AccountingEntry) -> List[TabWrite]:
        row = [
            str(entry.id),
            entry.entry_type,
            entry.category or "",
            entry.subcategory or "",
            entry.title or "",
            entry.description or "",
            amount(entry.amount),
            date_cell(entry.entry_date),
            entry.payment_method or "Cash",
            entry.document_url or "",
            yes_no(entry.reflect_to_company),
            date_cell(entry.created_at),
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, entry: AccountingEntry) -> str:
        return f'Accounting entry "{entry.title}"'
