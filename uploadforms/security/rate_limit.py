"""Per-client throttling of public form submissions."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from ..config import settings


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: int = 0


class SlidingWindowRateLimiter:
    """Counts hits per client over a sliding window.

    A client that goes over ``form_rate_limit_max_submissions`` within the
    window is refused until a cool-down of ``form_rate_limit_block_seconds``
    has passed, even if the window itself has emptied.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._cooldowns: dict[str, float] = {}
        self._last_sweep = clock()
        self._lock = asyncio.Lock()

    @staticmethod
    def _prune(hits: deque[float], oldest_allowed: float) -> None:
        while hits and hits[0] <= oldest_allowed:
            hits.popleft()

    def _sweep(self, now: float, window: float) -> None:
        """Forget clients with no hits in the window and no running cool-down."""
        for client in list(self._hits):
            hits = self._hits[client]
            self._prune(hits, now - window)
            if not hits:
                del self._hits[client]
        for client, ends in list(self._cooldowns.items()):
            if ends <= now:
                del self._cooldowns[client]
        self._last_sweep = now

    def tracked_clients(self) -> int:
        return len(self._hits.keys() | self._cooldowns.keys())

    async def hit(self, client: str) -> RateDecision:
        now = self._clock()
        window = settings.form_rate_limit_window_seconds

        async with self._lock:
            if now - self._last_sweep >= window:
                self._sweep(now, window)

            cooldown_ends = self._cooldowns.get(client, 0.0)
            if now < cooldown_ends:
                return RateDecision(False, max(1, int(cooldown_ends - now)))
            self._cooldowns.pop(client, None)

            # Kept only while it holds hits
            hits = self._hits.pop(client, None) or deque()
            self._prune(hits, now - window)
            if len(hits) < settings.form_rate_limit_max_submissions:
                hits.append(now)
                self._hits[client] = hits
                return RateDecision(True)

            self._cooldowns[client] = now + settings.form_rate_limit_block_seconds
            if not hits:
                return RateDecision(False, settings.form_rate_limit_block_seconds)
            self._hits[client] = hits
            return RateDecision(False, max(1, int(hits[0] + window - now)))

    def reset(self) -> None:
        self._hits.clear()
        self._cooldowns.clear()


submission_rate_limiter = SlidingWindowRateLimiter()
