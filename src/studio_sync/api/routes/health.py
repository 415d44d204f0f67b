"""
Health check endpoint.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, status

from studio_sync import __version__

router = APIRouter()


@router.get("", status_code=status.HTTP_200_OK)
def health_check() -> Dict[str, Any]:
    """
    Liveness check.
    
    Returns 200 if the application is running.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "studio-sync",
        "version": __version__,
    }
