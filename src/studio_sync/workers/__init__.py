"""
Celery workers for queued entity syncs and the scheduled purge.
"""

from .celery_app import celery_app
from .tasks import sync_entity, purge_expired_firms

__all__ = [
    "celery_app",
    "sync_entity",
    "purge_expired_firms",
]
