"""Rate-limited, retrying executor for outbound calls.

Knows nothing about HTTP or providers: it runs an async operation under a
per-provider request budget and retries failures the caller deems transient.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from profileresolver.logging import get_logger

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


def never_retry(error: BaseException) -> bool:
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Request budget and retry behaviour for one provider."""

    requests_per_window: int = 60
    window_ms: int = 60_000
    min_spacing_ms: int = 0
    max_retries: int = 3
    base_retry_delay_ms: int = 1000
    max_retry_delay_ms: int = 30_000
    timeout_ms: int | None = None
    should_retry: Callable[[BaseException], bool] = field(default=never_retry)

    def backoff_delay(self, attempt: int) -> float:
        """
        Seconds to wait after a failed attempt.

        Examples (base 1000ms):
            attempt 1 -> 1.0
            attempt 2 -> 2.0
            attempt 3 -> 4.0
        """
        delay_ms = self.base_retry_delay_ms * (2 ** (attempt - 1))
        return min(delay_ms, self.max_retry_delay_ms) / 1000


class RateLimiter:
    """
    Sliding-window limiter with minimum spacing between dispatches.

    Callers reserve a dispatch slot under the lock and sleep outside it, so
    concurrent callers share one budget without holding the lock while waiting.
    """

    def __init__(self, clock: Clock = time.monotonic, sleep: Sleep = asyncio.sleep):
        self._clock = clock
        self._sleep = sleep
        self._dispatches: deque[float] = deque()
        self._last_dispatch: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_dispatch(self) -> float | None:
        return self._last_dispatch

    def window_count(self, window_ms: int) -> int:
        """Number of dispatches (made or reserved) in the window ending now."""
        cutoff = self._clock() - window_ms / 1000
        return sum(1 for t in self._dispatches if t > cutoff)

    async def acquire(
        self,
        requests_per_window: int,
        window_ms: int,
        min_spacing_ms: int = 0,
    ) -> float:
        """
        Wait until a request may be dispatched.

        Returns:
            Seconds the caller was delayed
        """
        window = window_ms / 1000

        async with self._lock:
            now = self._clock()
            slot = now
            if self._last_dispatch is not None:
                slot = max(slot, self._last_dispatch + min_spacing_ms / 1000)

            while self._dispatches and self._dispatches[0] <= now - window:
                self._dispatches.popleft()

            if requests_per_window > 0:
                in_window = [t for t in self._dispatches if t > slot - window]
                if len(in_window) >= requests_per_window:
                    # Wait for the oldest call that still counts to age out
                    slot = max(slot, in_window[-requests_per_window] + window)

            self._dispatches.append(slot)
            self._last_dispatch = slot

        delay = slot - now
        if delay > 0:
            try:
                await self._sleep(delay)
            except asyncio.CancelledError:
                # The call was never made, so it must not hold budget
                await self._release(slot)
                raise
        return max(delay, 0.0)

    async def _release(self, slot: float) -> None:
        async with self._lock:
            if slot in self._dispatches:
                self._dispatches.remove(slot)
            if self._last_dispatch == slot:
                self._last_dispatch = max(self._dispatches, default=None)

    def reset(self) -> None:
        """Forget all recorded dispatches."""
        self._dispatches.clear()
        self._last_dispatch = None


class RateLimitedExecutor:
    """Runs operations through a RateLimiter with bounded exponential retry."""

    def __init__(
        self,
        name: str,
        limiter: RateLimiter | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize executor.

        Args:
            name: Label used in log events (usually the provider name)
            limiter: Limiter state to use, a fresh one if None
            sleep: Coroutine used for backoff waits
        """
        self.name = name
        self.limiter = limiter or RateLimiter()
        self._sleep = sleep
        self._log = get_logger("executor").bind(target=name)

    async def execute(self, operation: Callable[[], Awaitable[T]], policy: RetryPolicy) -> T:
        """
        Run operation under the policy's budget, retrying transient failures.

        The final error propagates unchanged, with an ``attempts`` attribute
        recording how many times the operation ran.
        """
        attempt = 0

        while True:
            attempt += 1
            waited = await self.limiter.acquire(
                policy.requests_per_window,
                policy.window_ms,
                policy.min_spacing_ms,
            )
            if waited > 0:
                self._log.debug("rate_limit_wait", attempt=attempt, waited_seconds=round(waited, 3))

            try:
                if policy.timeout_ms:
                    return await asyncio.wait_for(operation(), policy.timeout_ms / 1000)
                return await operation()
            except Exception as error:
                if attempt > policy.max_retries or not policy.should_retry(error):
                    error.attempts = attempt
                    raise

                delay = policy.backoff_delay(attempt)
                self._log.warning(
                    "retry_scheduled",
                    attempt=attempt,
                    max_retries=policy.max_retries,
                    delay_seconds=delay,
                    error=str(error) or type(error).__name__,
                )
                await self._sleep(delay)
