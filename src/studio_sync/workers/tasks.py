"""
Celery tasks for background processing.

Tasks:
- sync_entity: Mirror one record into its firm's spreadsheet
- purge_expired_firms: Purge expired trial firms (daily, via beat)
"""

from typing import Optional

from celery import Task
from sqlalchemy.orm import Session

from .celery_app import celery_app
from ..cache.redis_lock import FirmLock, LockNotAcquiredError
from ..database.connection import SessionLocal
from ..services.purge import TenantPurger
from ..services.sync_dispatcher import SyncDispatcher
from ..utils.exceptions import NotFoundError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseTask(Task):
    """
    Base task class that provides database session management.

    Automatically creates and closes database sessions for tasks.
    """
    _db: Optional[Session] = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        """Close database session after task completion."""
        if self._db is not None:
            self._db.close()
            self._db = None


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="studio_sync.workers.tasks.sync_entity",
    max_retries=3,
    default_retry_delay=30,
)
def sync_entity(self, item_type: str, item_id: str, firm_id: str, operation: str = "update") -> dict:
    """
    Sync one record under the firm's spreadsheet lock.

    Args:
        item_type: Entity type (client, event, task, ...)
        item_id: Record UUID
        firm_id: Firm UUID
        operation: create, update or delete

    Returns:
        dict: Dispatcher response (success, message, syncedItem, ...)

    Raises:
        ValidationError, NotFoundError: Not retried
        Exception: If sync fails after all retries
    """
    try:
        with FirmLock(firm_id):
            result = SyncDispatcher(self.db).sync_entity(item_type, item_id, firm_id, operation)
    except (ValidationError, NotFoundError) as exc:
        logger.error(f"Sync of {item_type} {item_id} for firm {firm_id} rejected: {exc}")
        raise
    except LockNotAcquiredError as exc:
        logger.warning(f"{exc}, requeueing {item_type} {item_id}")
        raise self.retry(exc=exc, countdown=5)
    except Exception as exc:
        logger.error(f"Sync of {item_type} {item_id} for firm {firm_id} failed: {exc}", exc_info=True)

        if self.request.retries < self.max_retries:
            logger.info(f"Retrying sync of {item_type} {item_id} (attempt {self.request.retries + 1})")
            raise self.retry(exc=exc)

        raise

    logger.info(f"{result.summary.message} (firm {firm_id})")
    return result.to_response()


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="studio_sync.workers.tasks.purge_expired_firms",
)
def purge_expired_firms(self) -> dict:
    """
    Purge firms whose trial and grace period expired without a subscription.

    Returns:
        dict: Purge report (success, purgedCount, totalExpired, errors, timestamp)
    """
    report = TenantPurger(self.db).purge_expired_tenants()
    return report.to_response()
