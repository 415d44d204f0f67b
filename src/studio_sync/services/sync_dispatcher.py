"""
Entity sync dispatcher.

Routes ``(item type, item id, firm id, operation)`` requests to the handler of
the item type, against the firm's spreadsheet. Called after every mutation of
a business record; the record's own write does not depend on the outcome, but
the caller is always told whether the spreadsheet was updated.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union
import uuid

from sqlalchemy.orm import Session

from studio_sync.database.models import Firm
from studio_sync.database.sheets import SheetsDocumentClient, spreadsheet_url
from studio_sync.services.google_auth import AccessToken, GoogleAuthService
from studio_sync.services.sync_handlers import HANDLERS, EntityType, SyncedSummary, SyncOperation
from studio_sync.services.sync_handlers.base import parse_uuid
from studio_sync.utils.config import get_config
from studio_sync.utils.exceptions import (
    NotFoundError,
    SyncError,
    UnsupportedEntityError,
    ValidationError,
)
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


SheetsFactory = Callable[[AccessToken], SheetsDocumentClient]


@dataclass
class SyncResult:
    """Outcome of one dispatch."""
    
    summary: SyncedSummary
    spreadsheet_id: str
    
    @property
    def spreadsheet_url(self) -> str:
        return spreadsheet_url(self.spreadsheet_id)
    
    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "message": self.summary.message,
            "syncedItem": self.summary.to_dict(),
            "operation": self.summary.operation.value,
            "spreadsheetUrl": self.spreadsheet_url,
        }


def parse_entity_type(value: Union[str, EntityType]) -> EntityType:
    try:
        return EntityType(value)
    except ValueError:
        raise UnsupportedEntityError(str(value))


def parse_operation(value: Union[str, SyncOperation]) -> SyncOperation:
    try:
        return SyncOperation(value)
    except ValueError:
        raise ValidationError("operation must be create, update, or delete", field="operation", value=value)


class SyncDispatcher:
    """
    Dispatches entity sync requests.
    
    Example:
        dispatcher = SyncDispatcher(db)
        result = dispatcher.sync_entity("client", client_id, firm_id, "create")
    """
    
    def __init__(self, db: Session,
                 auth_service: Optional[GoogleAuthService] = None,
                 sheets_factory: Optional[SheetsFactory] = None):
        """
        Initialize the dispatcher.
        
        Args:
            db: Database session
            auth_service: Token source (built from settings if None)
            sheets_factory: Builds a document client for a token
        """
        self.db = db
        self.config = get_config()
        self.auth_service = auth_service or GoogleAuthService()
        self.sheets_factory = sheets_factory or (lambda token: SheetsDocumentClient(access_token=token))
    
    def _firm(self, firm_id: Union[str, uuid.UUID]) -> Firm:
        firm = self.db.get(Firm, parse_uuid(firm_id, "firm"))
        if firm is None or not firm.spreadsheet_id:
            raise NotFoundError(
                "Firm not found or no Google Spreadsheet configured",
                entity_type="firm",
                entity_id=str(firm_id),
            )
        return firm
    
    def sync_entity(self, entity_type: Union[str, EntityType], entity_id: Union[str, uuid.UUID],
                    firm_id: Union[str, uuid.UUID],
                    operation: Union[str, SyncOperation] = SyncOperation.UPDATE) -> SyncResult:
        """
        Mirror one record into its firm's spreadsheet.
        
        Raises:
            UnsupportedEntityError: Unknown entity type.
            ValidationError: Unknown operation.
            NotFoundError: Firm (or its spreadsheet) or the record is missing.
            AuthenticationError: No access token could be acquired.
            SyncError: Any other failure while writing rows.
        """
        entity = parse_entity_type(entity_type)
        op = parse_operation(operation)
        firm = self._firm(firm_id)
        
        logger.info(f"Sync {entity.value} {entity_id} ({op.value}) for firm {firm.id}")
        
        token = self.auth_service.get_access_token(
            timeout=self.config.sync_auth_timeout,
            max_retries=self.config.sync_auth_max_retries,
        )
        sheets = self.sheets_factory(token)
        handler = HANDLERS[entity](self.db, sheets, firm.spreadsheet_id, firm.id)
        
        try:
            summary = handler.sync(op, entity_id)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error(f"Failed to sync {entity.value} {entity_id} for firm {firm.id}: {e}")
            raise SyncError(
                f"Failed to sync {entity.value}: {e}",
                entity_type=entity.value,
                entity_id=str(entity_id),
                operation=op.value,
                cause=e,
            ) from e
        
        return SyncResult(summary=summary, spreadsheet_id=firm.spreadsheet_id)


def sync_entity(db: Session, entity_type: str, entity_id: str, firm_id: str,
                operation: str = "update", **kwargs) -> SyncResult:
    """Module-level shortcut for ``SyncDispatcher(db, **kwargs).sync_entity(...)``."""
    return SyncDispatcher(db, **kwargs).sync_entity(entity_type, entity_id, firm_id, operation)
