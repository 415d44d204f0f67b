"""
Retry utilities with linear backoff and a per-attempt timeout race.

Each attempt runs as a task raced against a timer task; whichever settles
first decides the attempt and the other one is cancelled and awaited so
its resources (open sockets, pending sleeps) are released. Failed attempts
are retried after ``base_delay * attempt`` seconds; there is no delay after
the final attempt.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from studio_sync.utils.exceptions import ConfigurationError, StudioSyncError
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    
    max_retries: int = 3
    base_delay: float = 1.0  # Delay unit in seconds, multiplied by the attempt number
    timeout: Optional[float] = 30.0  # Per-attempt timeout, None disables the race
    
    # Errors that are re-raised immediately without further attempts
    non_retriable: Tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (ConfigurationError,)
    )


class AttemptTimeoutError(StudioSyncError):
    """Raised when an attempt loses the race against its timer."""
    
    def __init__(self, timeout: float):
        super().__init__(f"Operation timed out after {timeout}s", {"timeout_seconds": timeout})
        self.timeout = timeout


class RetryExhaustedError(StudioSyncError):
    """Raised when every configured attempt has failed."""
    
    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(
            f"Failed after {attempts} attempts. Last error: {last_error}",
            {"attempts": attempts}
        )
        self.attempts = attempts
        self.last_error = last_error


class LinearBackoff:
    """Delay calculator: ``base_delay * attempt``."""
    
    def __init__(self, config: RetryConfig):
        self.config = config
    
    def calculate_delay(self, attempt: int) -> float:
        return self.config.base_delay * attempt
    
    def has_next(self, attempt: int) -> bool:
        return attempt < self.config.max_retries


async def race_with_timeout(awaitable: Awaitable[Any], timeout: float) -> Any:
    """
    Run ``awaitable`` against a timer; the first to settle wins.
    
    Args:
        awaitable: Coroutine performing the actual work
        timeout: Seconds before the timer wins
        
    Returns:
        Result of the awaitable if it settles first.
        
    Raises:
        AttemptTimeoutError: If the timer settles first.
        Exception: Whatever the awaitable raised, if it settled first.
    """
    work = asyncio.ensure_future(awaitable)
    timer = asyncio.ensure_future(asyncio.sleep(timeout))
    
    try:
        done, pending = await asyncio.wait({work, timer}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        timer.cancel()
        await asyncio.gather(work, timer, return_exceptions=True)
        raise
    
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    
    if work in done:
        return work.result()
    
    raise AttemptTimeoutError(timeout)


async def retry_async(func: Callable[[], Awaitable[Any]],
                      config: Optional[RetryConfig] = None,
                      operation: str = "operation") -> Any:
    """
    Call ``func`` until it succeeds or attempts are exhausted.
    
    Args:
        func: Zero-argument coroutine factory, called once per attempt
        config: Retry configuration (uses default if None)
        operation: Name used in log messages
        
    Raises:
        RetryExhaustedError: After the final failed attempt.
        Exception: Any ``config.non_retriable`` error, immediately.
    """
    if config is None:
        config = RetryConfig()
    
    backoff = LinearBackoff(config)
    last_error: Optional[BaseException] = None
    
    for attempt in range(1, config.max_retries + 1):
        try:
            if config.timeout is not None:
                return await race_with_timeout(func(), config.timeout)
            return await func()
        
        except config.non_retriable:
            raise
        
        except Exception as e:
            last_error = e
            logger.warning(f"{operation} attempt {attempt}/{config.max_retries} failed: {e}")
            
            if backoff.has_next(attempt):
                delay = backoff.calculate_delay(attempt)
                logger.info(f"Retrying {operation} in {delay:.2f}s")
                await asyncio.sleep(delay)
    
    raise RetryExhaustedError(config.max_retries, last_error)
