"""Write serializer: FIFO async mutex owned by a store. No module-level shared state."""

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class WriteLock:
    """
    Runs submitted operations one at a time in submission order.
    asyncio.Lock wakes waiters first-in first-out, so ordering follows call order.
    A failing operation raises to its own caller and does not block later ones.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Operations submitted and not yet finished (running + waiting)."""
        return self._pending

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        self._pending += 1
        try:
            async with self._lock:
                return await fn()
        finally:
            self._pending -= 1
