"""
Firm provisioning route.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio_sync.api.middleware.admin_key import require_admin_key
from studio_sync.api.schemas import FirmCreateRequest
from studio_sync.database.connection import get_db
from studio_sync.services.provisioning import TenantMeta, TenantProvisioner, parse_creator
from studio_sync.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_provisioner(db: Session = Depends(get_db)) -> TenantProvisioner:
    return TenantProvisioner(db)


@router.post("", dependencies=[Depends(require_admin_key)])
def create_firm(
    data: FirmCreateRequest,
    provisioner: TenantProvisioner = Depends(get_provisioner)
) -> Dict[str, Any]:
    """
    Create a firm with its spreadsheet tabs, calendar and database records.
    
    Failures return ``{success: false, error, phase}``.
    """
    meta = TenantMeta(
        name=data.firm_name,
        created_by=parse_creator(data.created_by),
        description=data.description,
        contact_phone=data.contact_phone,
        contact_email=data.contact_email,
        header_left_content=data.header_left_content,
        footer_content=data.footer_content,
    )
    result = provisioner.provision_tenant(meta, data.spreadsheet_input, data.calendar_email)
    
    logger.info(f"Firm {result.firm_id} created via API")
    return result.to_response()
