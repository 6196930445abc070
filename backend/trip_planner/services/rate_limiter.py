"""
Sliding-window request throttle for the geocoding backend.

AMap rejects a key that sends more than 3 queries inside any one-second
window. RateLimitedQueue serializes outbound calls so that, whatever the
number of concurrent callers, no window of `window` seconds sees more than
`max_calls` dispatches. Tasks are served strictly FIFO by a single drain loop.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, TypeVar

from trip_planner.core.errors import QueueClearedError
from trip_planner.core.logging import setup_logger

logger = setup_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueueStatus:
    current_calls: int
    queue_length: int
    can_dispatch: bool


class RateLimitedQueue:
    def __init__(
        self,
        max_calls: int = 3,
        window: float = 1.0,
        min_gap: float = 0.1,
        safety_margin: float = 0.05,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.max_calls = max_calls
        self.window = window
        self.min_gap = max(0.0, min_gap)
        self.safety_margin = max(0.0, safety_margin)
        self._clock = clock
        self._sleep = sleep

        self._pending: Deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._dispatch_times: Deque[float] = deque()
        self._draining = False
        self._drain_task: asyncio.Task | None = None
        self._hold_until = 0.0

    # ---- Public API ----
    async def enqueue(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Schedule `task` (a zero-argument coroutine function) and wait for its result.

        The task's own exception is re-raised to this caller only; the queue
        keeps serving the remaining tasks.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._pending.append((task, future))
        if not self._draining:
            self._draining = True
            self._drain_task = loop.create_task(self._drain())
        return await future

    def hold(self, seconds: float) -> None:
        """Delay the next dispatch by at least `seconds` (used after a rate-limit reply)."""
        self._hold_until = max(self._hold_until, self._clock() + max(0.0, seconds))

    def status(self) -> QueueStatus:
        self._purge(self._clock())
        current = len(self._dispatch_times)
        return QueueStatus(
            current_calls=current,
            queue_length=len(self._pending),
            can_dispatch=current < self.max_calls,
        )

    def clear(self) -> None:
        """Reject every pending task and forget recent dispatches."""
        while self._pending:
            _, future = self._pending.popleft()
            if not future.done():
                future.set_exception(QueueClearedError("Queue cleared"))
        self._dispatch_times.clear()

    def reset(self) -> None:
        """Forget recent dispatches without touching pending tasks."""
        self._dispatch_times.clear()
        self._hold_until = 0.0

    @property
    def queue_length(self) -> int:
        return len(self._pending)

    # ---- Drain loop ----
    def _purge(self, now: float) -> None:
        while self._dispatch_times and now - self._dispatch_times[0] >= self.window:
            self._dispatch_times.popleft()

    async def _drain(self) -> None:
        try:
            while self._pending:
                now = self._clock()
                if now < self._hold_until:
                    await self._sleep(self._hold_until - now)
                    continue

                self._purge(now)
                if len(self._dispatch_times) >= self.max_calls:
                    oldest = self._dispatch_times[0]
                    wait = self.window - (now - oldest) + self.safety_margin
                    logger.debug(f"[rate_limiter] Window full, waiting {wait * 1000:.0f}ms")
                    await self._sleep(max(wait, 0.0))
                    continue

                task, future = self._pending.popleft()
                if future.done():
                    # Caller went away (cancelled) before its turn
                    continue

                self._dispatch_times.append(self._clock())
                try:
                    result = await task()
                except Exception as exc:
                    if not future.done():
                        future.set_exception(exc)
                else:
                    if not future.done():
                        future.set_result(result)

                if self.min_gap:
                    await self._sleep(self.min_gap)
        finally:
            self._draining = False
            self._drain_task = None


__all__ = ["RateLimitedQueue", "QueueStatus"]
