"""
Redis access for studio-sync (per-firm write locks).
"""

from .redis_lock import FirmLock, LockNotAcquiredError, get_redis, sheet_lock_key

__all__ = [
    "FirmLock",
    "LockNotAcquiredError",
    "get_redis",
    "sheet_lock_key",
]
