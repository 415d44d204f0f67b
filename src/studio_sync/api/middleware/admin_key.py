"""
Shared-secret guard for admin and provisioning routes.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from studio_sync.utils.config import get_config
from studio_sync.utils.logger import get_logger

logger = get_logger(__name__)

ADMIN_KEY_HEADER = "X-Admin-Key"

admin_key_header = APIKeyHeader(name=ADMIN_KEY_HEADER, auto_error=False)


def require_admin_key(api_key: Optional[str] = Depends(admin_key_header)) -> None:
    """
    Dependency rejecting requests without the configured admin key.

    Usage:
        @router.post("/purge-expired", dependencies=[Depends(require_admin_key)])
        def purge_expired(): ...
    """
    expected = get_config().admin_api_key

    if not expected:
        logger.error("ADMIN_API_KEY is not set, refusing admin request")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured"
        )

    if not api_key or not secrets.compare_digest(api_key.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Admin request rejected: missing or wrong admin key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin key required"
        )
