"""
Bounded retry for asynchronous operations.

Every wait between attempts has the same length: no jitter and no backoff
growth.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .exceptions import ShutdownRequested
from .models import RetryPolicy
from .observer import PipelineObserver
from .utils.timing import interruptible, interruptible_sleep

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """Runs an operation up to ``policy.max_attempts`` times."""

    def __init__(
        self,
        observer: PipelineObserver | None = None,
        shutdown_event: asyncio.Event | None = None
    ) -> None:
        """
        Initialize the RetryExecutor.

        Args:
            observer: Receives a ``warn`` event per failed non-final attempt
            shutdown_event: Aborts a running attempt or the wait between attempts when set
        """
        self.observer = observer
        self.shutdown_event = shutdown_event

    async def execute(self, operation: Callable[[], Awaitable[T]], policy: RetryPolicy) -> T:
        """
        Run ``operation`` until it succeeds or the attempts are used up.

        Args:
            operation: Zero-argument callable returning a fresh awaitable
            policy: Attempt cap, delay and per-attempt timeout

        Returns:
            The result of the first successful attempt

        Raises:
            Exception: The error of the final attempt, unchanged
            ShutdownRequested: If shutdown is requested during an attempt or between attempts
        """
        for attempt in range(1, policy.max_attempts + 1):
            try:
                call = operation()
                if policy.call_timeout is not None:
                    call = asyncio.wait_for(call, timeout=policy.call_timeout)
                return await interruptible(call, self.shutdown_event)
            except ShutdownRequested:
                raise
            except Exception as e:
                if attempt == policy.max_attempts:
                    raise
                message = f"Retry {attempt}/{policy.max_attempts}: {self._describe(e)}"
                logger.warning(message)
                if self.observer:
                    self.observer.on_log_event('warn', message)
                await interruptible_sleep(policy.delay, self.shutdown_event)

        raise AssertionError("unreachable")  # loop always returns or raises

    @staticmethod
    def _describe(error: Exception) -> str:
        if isinstance(error, asyncio.TimeoutError):
            return "call timed out"
        return str(error) or type(error).__name__
