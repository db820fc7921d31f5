"""Speculative local state change reconciled against the server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable


@dataclass
class OptimisticUpdate:
    """Apply immediately, call the server, revert if the call fails.

    The remote exception is re-raised after ``revert`` so the caller decides
    what to show.
    """

    apply: Callable[[], None]
    revert: Callable[[], None]
    remote: Callable[[], Awaitable[Any]]

    async def run(self) -> Any:
        self.apply()
        try:
            return await self.remote()
        except Exception:
            self.revert()
            raise
