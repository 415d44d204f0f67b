"""
Per-firm spreadsheet write lock backed by Redis.

Row upserts read the tab and then write by position, so two writers on the
same spreadsheet can append to the same row. Queued syncs take this lock so
only one of them touches a firm's spreadsheet at a time.
"""

from typing import Optional

import redis
from redis.connection import ConnectionPool

from studio_sync.utils.config import get_config
from studio_sync.utils.exceptions import StudioSyncError
from studio_sync.utils.logger import get_logger

logger = get_logger(__name__)


LOCK_PREFIX = "studio-sync:sheet-lock"


class LockNotAcquiredError(StudioSyncError):
    """Raised when the firm lock is still held by another writer."""
    
    def __init__(self, firm_id: str, timeout: float):
        super().__init__(
            f"Spreadsheet of firm {firm_id} is locked by another sync",
            {"firm_id": firm_id, "timeout": timeout},
        )
        self.firm_id = firm_id


def sheet_lock_key(firm_id: str) -> str:
    """Lock key for a firm's spreadsheet: ``studio-sync:sheet-lock:<firm id>``."""
    return f"{LOCK_PREFIX}:{firm_id}"


# Global client instance
_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """
    Get or create the global Redis client.
    
    Returns:
        redis.Redis with a pooled connection to ``REDIS_URL``
    """
    global _redis_client
    
    if _redis_client is None:
        redis_url = get_config().redis_url
        pool = ConnectionPool.from_url(redis_url, max_connections=50)
        _redis_client = redis.Redis(connection_pool=pool)
        logger.info(f"Redis client initialized (url={redis_url})")
    
    return _redis_client


class FirmLock:
    """
    Context manager holding the spreadsheet lock of one firm.
    
    Example:
        with FirmLock(firm_id):
            dispatcher.sync_entity(...)
    """
    
    def __init__(self, firm_id: str, timeout: Optional[float] = None,
                 blocking_timeout: Optional[float] = None,
                 client: Optional[redis.Redis] = None):
        """
        Initialize the lock.
        
        Args:
            firm_id: Firm UUID
            timeout: Lock expiry in seconds (default SYNC_LOCK_TIMEOUT)
            blocking_timeout: How long to wait for the lock (default: timeout)
            client: Redis client (default: global client)
        """
        self.firm_id = str(firm_id)
        self.timeout = timeout or get_config().sync_lock_timeout
        self.blocking_timeout = blocking_timeout if blocking_timeout is not None else self.timeout
        self.client = client or get_redis()
        self._lock = self.client.lock(
            sheet_lock_key(self.firm_id),
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
    
    def __enter__(self) -> "FirmLock":
        if not self._lock.acquire():
            raise LockNotAcquiredError(self.firm_id, self.blocking_timeout)
        logger.debug(f"Acquired spreadsheet lock for firm {self.firm_id}")
        return self
    
    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self._lock.release()
        except redis.exceptions.LockError as e:
            # Expired while held; the next writer may already own it
            logger.warning(f"Spreadsheet lock for firm {self.firm_id} expired before release: {e}")
        else:
            logger.debug(f"Released spreadsheet lock for firm {self.firm_id}")
