"""
Event rows in Master Events and the event's type tab.

A multi-day event becomes one row per day keyed ``<eventId>-day<N>``; each
day row lists that day's crew by role. Payment columns are recomputed on
every sync from the event, its standalone payments and its closing balances.
Rows left over from an earlier shape of the event (other day count, other
event type) are removed after the current rows are written.
"""

from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Sequence

from sqlalchemy import func

from studio_sync.database import structure
from studio_sync.database.models import (
    Event,
    EventClosingBalance,
    EventStaffAssignment,
    Freelancer,
    Payment,
    Profile,
)
from studio_sync.utils.exceptions import SheetsAPIError
from studio_sync.utils.logger import get_logger

from .base import EntitySyncHandler, EntityType, TabWrite, amount, date_cell, yes_no


logger = get_logger(__name__)


PHOTOGRAPHER = "Photographer"
CINEMATOGRAPHER = "Cinematographer"
DRONE_PILOT = "Drone Pilot"
SAME_DAY_EDITOR = "Same Day Editor"

CREW_ROLES = (PHOTOGRAPHER, CINEMATOGRAPHER, DRONE_PILOT, SAME_DAY_EDITOR)

CrewByDay = Dict[int, Dict[str, List[str]]]


def payment_status(total: float, advance: float, collected: float, closed: float = 0) -> str:
    """
    Derive the payment status of an event.
    
    Paid when nothing is pending, Partial when an advance or payment exists
    but a balance remains, otherwise Pending.
    """
    pending = total - advance - collected - closed
    if pending <= 0:
        return "Paid"
    if collected > 0 or advance > 0:
        return "Partial"
    return "Pending"


def balance_due(total: float, advance: float, collected: float, closed: float = 0) -> float:
    return max(0, total - advance - collected - closed)


def day_key(event_id: str, day: int, total_days: int) -> str:
    return f"{event_id}-day{day}" if total_days > 1 else event_id


def day_title(base_title: str, day: int, total_days: int) -> str:
    return f"{base_title} - DAY {day:02d}" if total_days > 1 else base_title


def is_event_key(event_id: str) -> Callable[[str], bool]:
    """Predicate matching the plain key and every day key of an event."""
    day_prefix = f"{event_id}-day"
    return lambda key: key == event_id or key.startswith(day_prefix)


def group_crew(assignments: Sequence[EventStaffAssignment],
               names: Dict[str, str]) -> CrewByDay:
    """
    Group assigned crew names by day and role, without duplicates.
    
    Args:
        assignments: Assignment records of one event
        names: Display name by staff/freelancer id (as str)
    """
    crew: CrewByDay = defaultdict(lambda: {role: [] for role in CREW_ROLES})
    
    for assignment in assignments:
        if assignment.role not in CREW_ROLES:
            continue
        
        if assignment.staff_id:
            name = names.get(str(assignment.staff_id), "Unknown Staff")
        elif assignment.freelancer_id:
            name = names.get(str(assignment.freelancer_id), "Unknown Freelancer")
        else:
            continue
        
        day_names = crew[assignment.day_number or 1][assignment.role]
        if name not in day_names:
            day_names.append(name)
    
    return crew


class EventHandler(EntitySyncHandler):
    
    entity_type = EntityType.EVENT
    primary_tab = structure.MASTER_EVENTS
    primary_headers = structure.MASTER_EVENTS_HEADERS
    deleted_label = 'Event "Deleted Event"'
    
    def load(self, entity_id) -> Event:
        return self._get(Event, entity_id, Event.firm_id == self.firm_id)
    
    @staticmethod
    def type_tab(event: Event) -> str:
        """Events of a type without its own tab are filed under Others."""
        return structure.event_type_tab(event.event_type) or "Others"
    
    @staticmethod
    def base_title(event: Event) -> str:
        return event.title or (event.client.name if event.client else None) or "Unknown Event"
    
    def _sum(self, column, event: Event) -> float:
        total = (
            self.db.query(func.coalesce(func.sum(column), 0))
            .filter(column.class_.event_id == event.id, column.class_.firm_id == self.firm_id)
            .scalar()
        )
        return float(total) if isinstance(total, Decimal) else float(total or 0)
    
    def _crew(self, event: Event) -> CrewByDay:
        assignments = (
            self.db.query(EventStaffAssignment)
            .filter(EventStaffAssignment.event_id == event.id)
            .all()
        )
        
        staff_ids = {a.staff_id for a in assignments if a.staff_id}
        freelancer_ids = {a.freelancer_id for a in assignments if a.freelancer_id}
        
        names: Dict[str, str] = {}
        if staff_ids:
            for profile in self.db.query(Profile).filter(Profile.id.in_(staff_ids)):
                if profile.full_name:
                    names[str(profile.id)] = profile.full_name
        if freelancer_ids:
            for freelancer in self.db.query(Freelancer).filter(Freelancer.id.in_(freelancer_ids)):
                names[str(freelancer.id)] = freelancer.full_name
        
        return group_crew(assignments, names)
    
    def build_writes(self, event: Event) -> List[TabWrite]:
        collected = self._sum(Payment.amount, event)
        closed = self._sum(EventClosingBalance.closing_amount, event)
        total = float(event.total_amount or 0)
        advance = float(event.advance_amount or 0)
        
        status = payment_status(total, advance, collected, closed)
        balance = balance_due(total, advance, collected, closed)
        
        crew = self._crew(event)
        total_days = event.total_days or 1
        type_tab = self.type_tab(event)
        base_title = self.base_title(event)
        event_id = str(event.id)
        
        writes: List[TabWrite] = []
        for day in range(1, total_days + 1):
            day_date = event.event_date + timedelta(days=day - 1) if event.event_date else None
            day_crew = crew.get(day, {role: [] for role in CREW_ROLES})
            
            remarks = f"Day {day}/{total_days}"
            if event.description:
                remarks = f"{remarks} - {event.description}"
            
            row = [
                day_key(event_id, day, total_days),
                day_title(base_title, day, total_days),
                event.event_type or "",
                date_cell(day_date),
                event.venue or "",
                event.storage_disk or "",
                str(event.storage_size) if event.storage_size else "",
                ", ".join(day_crew[PHOTOGRAPHER]),
                ", ".join(day_crew[CINEMATOGRAPHER]),
                ", ".join(day_crew[DRONE_PILOT]),
                ", ".join(day_crew[SAME_DAY_EDITOR]),
                date_cell(event.created_at),
                amount(advance),
                amount(collected),
                amount(closed),
                amount(balance),
                amount(total),
                status,
                yes_no(event.photo_editing_status),
                yes_no(event.video_editing_status),
                remarks,
            ]
            
            writes.append(TabWrite(structure.MASTER_EVENTS, structure.MASTER_EVENTS_HEADERS, row))
            writes.append(TabWrite(type_tab, structure.MASTER_EVENTS_HEADERS, list(row)))
        
        return writes
    
    def write_row(self, write: TabWrite) -> None:
        """Type tab rows are a copy of Master Events; losing one is only logged."""
        if write.tab == structure.MASTER_EVENTS:
            super().write_row(write)
            return
        
        try:
            super().write_row(write)
        except SheetsAPIError as e:
            logger.warning(f"Could not write event row {write.key} to '{write.tab}': {e}")
    
    def after_upsert(self, event: Event, writes: List[TabWrite]) -> None:
        """Drop rows of this event that the current write set no longer covers."""
        event_id = str(event.id)
        belongs = is_event_key(event_id)
        current = {write.key for write in writes}
        type_tab = self.type_tab(event)
        
        existing_tabs = self.sheets.list_tabs(self.document_id)
        
        for tab in [structure.MASTER_EVENTS] + structure.EVENT_TYPE_TABS:
            if tab not in existing_tabs:
                continue
            keep = current if tab in (structure.MASTER_EVENTS, type_tab) else set()
            stale = self._delete_matching(tab, lambda key: belongs(key) and key not in keep,
                                          tolerate=tab != structure.MASTER_EVENTS)
            if stale:
                logger.info(f"Removed {stale} stale row(s) of event {event_id} from '{tab}'")
    
    def delete_rows(self, entity_id: str) -> int:
        belongs = is_event_key(entity_id)
        deleted = self._delete_matching(structure.MASTER_EVENTS, belongs, tolerate=False)
        
        existing_tabs = self.sheets.list_tabs(self.document_id)
        for tab in structure.EVENT_TYPE_TABS:
            if tab in existing_tabs:
                deleted += self._delete_matching(tab, belongs, tolerate=True)
        
        return deleted
    
    def _delete_matching(self, tab: str, predicate: Callable[[str], bool], tolerate: bool) -> int:
        try:
            return self.sheets.delete_rows_matching(self.document_id, tab, predicate)
        except SheetsAPIError as e:
            if not tolerate:
                raise
            logger.warning(f"Could not clean event rows from '{tab}': {e}")
            return 0
    
    def describe(self, event: Event) -> str:
        return f'Event "{self.base_title(event)}"'
