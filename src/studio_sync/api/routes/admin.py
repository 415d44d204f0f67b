"""
Admin routes.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio_sync.api.middleware.admin_key import require_admin_key
from studio_sync.database.connection import get_db
from studio_sync.services.purge import TenantPurger

router = APIRouter()


def get_purger(db: Session = Depends(get_db)) -> TenantPurger:
    return TenantPurger(db)


@router.post("/purge-expired", dependencies=[Depends(require_admin_key)])
def purge_expired(purger: TenantPurger = Depends(get_purger)) -> Dict[str, Any]:
    """Purge every firm whose trial and grace period expired without a subscription."""
    return purger.purge_expired_tenants().to_response()
