"""
Common machinery of the per-entity sync handlers.

A handler maps one relational record to one or more fixed-schema spreadsheet
rows (``TabWrite``) and knows which keys to remove when the record is deleted.
``EntitySyncHandler.sync`` drives the shared flow: make sure target tabs exist
with the right headers, then upsert or delete rows keyed by column 0.
"""

import enum
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set, Union

from sqlalchemy.orm import Session

from studio_sync.database.models import utcnow
from studio_sync.database.sheets import Row, SheetsDocumentClient
from studio_sync.utils.exceptions import NotFoundError
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


class EntityType(str, enum.Enum):
    """Business record types mirrored into the spreadsheet."""
    CLIENT = "client"
    EVENT = "event"
    TASK = "task"
    EXPENSE = "expense"
    STAFF = "staff"
    FREELANCER = "freelancer"
    PAYMENT = "payment"
    STAFF_PAYMENT = "staff_payment"
    FREELANCER_PAYMENT = "freelancer_payment"
    ACCOUNTING = "accounting"


class SyncOperation(str, enum.Enum):
    """Mutation that triggered the sync."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class TabWrite:
    """One row destined for one tab."""
    
    tab: str
    headers: List[str]
    row: Row
    
    @property
    def key(self) -> str:
        return str(self.row[0])


@dataclass
class SyncedSummary:
    """Result of syncing one entity."""
    
    entity_type: EntityType
    entity_id: str
    operation: SyncOperation
    label: str
    rows: List[TabWrite] = field(default_factory=list)
    
    @property
    def message(self) -> str:
        return f"{self.label} {self.operation.value}d successfully"
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.entity_id,
            "type": self.entity_type.value,
            "label": self.label,
            "rows": [{"tab": write.tab, "key": write.key} for write in self.rows],
        }


# ----------------------------------------------------------------------
# Cell value helpers
# ----------------------------------------------------------------------

def parse_uuid(value: Union[str, uuid.UUID], entity_type: str = "record") -> uuid.UUID:
    """Parse an identifier; a malformed id can never match a record."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(f"Invalid {entity_type} id: {value}", entity_type=entity_type, entity_id=str(value))


def amount(value: Any) -> Union[int, float]:
    """Numeric cell value; integral amounts are written without decimals."""
    if value is None:
        return 0
    number = float(value) if isinstance(value, Decimal) else value
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def date_cell(value: Optional[Union[date, datetime]], default: str = "") -> str:
    """ISO date (no time part) or ``default``."""
    if value is None:
        return default
    if isinstance(value, datetime):
        return value.date().isoformat()
    return value.isoformat()


def today() -> str:
    return utcnow().date().isoformat()


def yes_no(flag: Any) -> str:
    return "Yes" if flag else "No"


def name_or(value: Optional[str], default: str) -> str:
    return value if value else default


# ----------------------------------------------------------------------
# Handler base
# ----------------------------------------------------------------------

class EntitySyncHandler(ABC):
    """
    Base class of all entity handlers.
    
    Subclasses declare ``entity_type``, ``primary_tab`` and ``deleted_label``
    and implement ``load``, ``build_writes`` and ``describe``.
    """
    
    entity_type: EntityType
    primary_tab: str
    primary_headers: List[str]
    deleted_label: str = "Deleted record"
    
    def __init__(self, db: Session, sheets: SheetsDocumentClient, document_id: str,
                 firm_id: Union[str, uuid.UUID]):
        self.db = db
        self.sheets = sheets
        self.document_id = document_id
        self.firm_id = parse_uuid(firm_id, "firm")
        self._ensured: Set[str] = set()
    
    # -- hooks ---------------------------------------------------------
    
    @abstractmethod
    def load(self, entity_id: uuid.UUID) -> Any:
        """Load the record with its display joins; raise NotFoundError if absent."""
    
    @abstractmethod
    def build_writes(self, record: Any) -> List[TabWrite]:
        """Rows to upsert for the record, in the tabs' column order."""
    
    @abstractmethod
    def describe(self, record: Any) -> str:
        """Human-readable label used in the sync message."""
    
    def row_key(self, entity_id: str) -> str:
        """Key of the record's row in the primary tab."""
        return entity_id
    
    def delete_rows(self, entity_id: str) -> int:
        """Remove the record's rows. Returns the number of rows deleted."""
        deleted = self.sheets.delete_row(self.document_id, self.primary_tab, self.row_key(entity_id))
        return int(deleted)
    
    def after_upsert(self, record: Any, writes: List[TabWrite]) -> None:
        """Hook run after all rows were written."""
    
    # -- shared flow ---------------------------------------------------
    
    def ensure_tab(self, tab: str, headers: List[str]) -> None:
        """Ensure a tab once per handler call."""
        if tab in self._ensured:
            return
        self.sheets.ensure_tab_exists(self.document_id, tab, headers)
        self._ensured.add(tab)
    
    def write_row(self, write: TabWrite) -> None:
        """Upsert one row, creating its tab first if needed."""
        self.ensure_tab(write.tab, write.headers)
        self.sheets.upsert_row(self.document_id, write.tab, write.row, match_column=0)
    
    def _get(self, model, entity_id: uuid.UUID, *criteria):
        record = (
            self.db.query(model)
            .filter(model.id == entity_id, *criteria)
            .first()
        )
        if record is None:
            raise NotFoundError(
                f"{self.entity_type.value} {entity_id} not found",
                entity_type=self.entity_type.value,
                entity_id=str(entity_id),
            )
        return record
    
    def sync(self, operation: Union[SyncOperation, str], entity_id: Union[str, uuid.UUID]) -> SyncedSummary:
        """
        Mirror one record into the spreadsheet.
        
        Args:
            operation: create, update or delete
            entity_id: Record identifier
            
        Returns:
            SyncedSummary with the rows written (empty for delete).
        """
        operation = SyncOperation(operation)
        entity_key = str(entity_id)
        
        self.ensure_tab(self.primary_tab, self.primary_headers)
        
        if operation == SyncOperation.DELETE:
            deleted = self.delete_rows(entity_key)
            logger.info(f"Deleted {deleted} row(s) for {self.entity_type.value} {entity_key}")
            return SyncedSummary(self.entity_type, entity_key, operation, self.deleted_label)
        
        record = self.load(parse_uuid(entity_id, self.entity_type.value))
        writes = self.build_writes(record)
        
        for write in writes:
            self.write_row(write)
        
        self.after_upsert(record, writes)
        
        logger.info(
            f"Synced {self.entity_type.value} {entity_key}: "
            f"{len(writes)} row(s) in {sorted({w.tab for w in writes})}"
        )
        return SyncedSummary(self.entity_type, entity_key, operation, self.describe(record), writes)

