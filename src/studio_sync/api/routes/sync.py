"""
Entity sync route.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio_sync.api.schemas import SyncRequest
from studio_sync.database.connection import get_db
from studio_sync.services.sync_dispatcher import SyncDispatcher
from studio_sync.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_dispatcher(db: Session = Depends(get_db)) -> SyncDispatcher:
    return SyncDispatcher(db)


@router.post("")
def sync_item(
    data: SyncRequest,
    dispatcher: SyncDispatcher = Depends(get_dispatcher)
) -> Dict[str, Any]:
    """
    Mirror one record into its firm's spreadsheet.
    
    Body: ``{itemType, itemId, firmId, operation}`` with operation one of
    create, update, delete (default update).
    """
    result = dispatcher.sync_entity(data.item_type, data.item_id, data.firm_id, data.operation)
    return result.to_response()
