"""
Spreadsheet structure shared by provisioning, entity sync and purge.

Tab names, their order in a freshly provisioned document, and the exact
column order of every tab. Column order is the contract with anyone reading
the spreadsheet: changing it is a breaking change.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple


# Tab names
CLIENTS = "Clients"
MASTER_EVENTS = "Master Events"
STAFF = "Staff"
TASKS = "Tasks"
EXPENSES = "Expenses"
FREELANCERS = "Freelancers"
PAYMENTS = "Payments"
ACCOUNTING = "Accounting"
REPORTS = "Reports"
MASTER_EVENTS_BACKUP = "Master Events Backup"

# One tab per event type; an event row is mirrored into the tab of its type
EVENT_TYPE_TABS: List[str] = [
    "Ring-Ceremony",
    "Pre-Wedding",
    "Wedding",
    "Maternity Photography",
    "Others",
]


MASTER_EVENTS_HEADERS: List[str] = [
    "Event ID", "Title", "Type", "Date", "Venue", "Storage", "Size",
    "Photographers", "Cinematographers", "Drone", "Same Day Edit",
    "Booking", "Advance", "Collected", "Closed", "Balance", "Total",
    "Status", "Photos Edited?", "Videos Edited?", "Remarks",
]

CLIENTS_HEADERS: List[str] = [
    "Client ID", "Name", "Phone", "Email", "Address", "Remarks",
]

TASKS_HEADERS: List[str] = [
    "Task ID", "Title", "Assigned To", "Client", "Event", "Date", "Type",
    "Description", "Due Date", "Status", "Priority", "Amount", "Updated", "Remarks",
]

STAFF_HEADERS: List[str] = [
    "Staff ID", "Name", "Role", "Mobile", "Joined", "Remarks",
]

EXPENSES_HEADERS: List[str] = [
    "Expense ID", "Date", "Category", "Vendor", "Description", "Amount",
    "Payment Method", "Event", "Receipt", "Remarks",
]

FREELANCERS_HEADERS: List[str] = [
    "Freelancer ID", "Name", "Role", "Phone", "Email", "Rate", "Remarks",
]

PAYMENTS_HEADERS: List[str] = [
    "Payment ID", "Event", "Client", "Amount", "Payment Method",
    "Payment Date", "Reference Number", "Notes", "Created Date",
]

ACCOUNTING_HEADERS: List[str] = [
    "Entry ID", "Entry Type", "Category", "Subcategory", "Title", "Description",
    "Amount", "Entry Date", "Payment Method", "Document URL",
    "Reflect to Company", "Created Date",
]

REPORTS_HEADERS: List[str] = [
    "Month", "Total Events", "Total Revenue", "Total Expenses", "Profit",
    "Most Booked Event Type", "Top City", "Most Booked Photographer",
    "Most Booked Cinematographer", "New Clients Acquired", "Repeat Clients",
    "Lead Conversion Rate",
]


@dataclass(frozen=True)
class TabDefinition:
    """A tab of the provisioned document."""
    
    title: str
    index: int
    headers: Tuple[str, ...]


def _build_tab_order() -> List[TabDefinition]:
    layout: List[Tuple[str, List[str]]] = [
        (CLIENTS, CLIENTS_HEADERS),
        (MASTER_EVENTS, MASTER_EVENTS_HEADERS),
    ]
    layout += [(title, MASTER_EVENTS_HEADERS) for title in EVENT_TYPE_TABS]
    layout += [
        (STAFF, STAFF_HEADERS),
        (TASKS, TASKS_HEADERS),
        (EXPENSES, EXPENSES_HEADERS),
        (FREELANCERS, FREELANCERS_HEADERS),
        (PAYMENTS, PAYMENTS_HEADERS),
        (ACCOUNTING, ACCOUNTING_HEADERS),
        (REPORTS, REPORTS_HEADERS),
        (MASTER_EVENTS_BACKUP, MASTER_EVENTS_HEADERS),
    ]
    return [
        TabDefinition(title=title, index=index, headers=tuple(headers))
        for index, (title, headers) in enumerate(layout)
    ]


# Fixed tab set, in provisioning order. Purge deletes exactly these names.
TAB_ORDER: List[TabDefinition] = _build_tab_order()
TAB_NAMES: List[str] = [tab.title for tab in TAB_ORDER]


def event_type_tab(event_type: Optional[str]) -> Optional[str]:
    """Map an event type to its tab; unknown types have no type tab."""
    if event_type in EVENT_TYPE_TABS:
        return event_type
    return None


@dataclass(frozen=True)
class DropdownRange:
    """A named range holding dropdown option values."""
    
    name: str
    values: Tuple[str, ...]


# Dropdown option lists seeded at provisioning
DROPDOWN_RANGES: List[DropdownRange] = [
    DropdownRange("EVENT_TYPES", tuple(EVENT_TYPE_TABS)),
    DropdownRange("PAYMENT_STATUS", ("Pending", "Partially Paid", "Paid")),
    DropdownRange("DELIVERY_STATUS", ("Not Started", "In Progress", "Delivered")),
]

# Option lists live in a spare column of the Reports tab, below the header row,
# so they never collide with synced entity rows.
DROPDOWN_TAB = REPORTS
DROPDOWN_COLUMN = len(REPORTS_HEADERS) + 2
