from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class AsyncOnce(Generic[T]):
    """
    Runs an async factory at most once per successful result.
    - Concurrent first callers wait on the same lock and share one result.
    - A failed attempt is not cached; the next caller tries again.
    - After success every call returns the cached value without locking.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]) -> None:
        self._factory = factory
        self._lock = asyncio.Lock()
        self._value: Optional[T] = None
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    async def get(self) -> T:
        if self._done:
            return self._value  # type: ignore[return-value]
        async with self._lock:
            if not self._done:
                self._value = await self._factory()
                self._done = True
        return self._value  # type: ignore[return-value]
