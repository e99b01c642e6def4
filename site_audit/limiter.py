"""site_audit.limiter: bounded concurrency over a list of async task factories."""

from __future__ import annotations

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

__all__ = ("Outcome", "ConcurrencyLimiter")

T = TypeVar("T")
TaskFactory = Callable[[], Awaitable[T]]


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Settled result of one task: either ``value`` or ``error``."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class ConcurrencyLimiter:
    """Runs task factories with at most ``limit`` of them in flight.

    A factory is only called once a slot is free, results come back in input
    order, and a failing task is settled into its own :class:`Outcome`
    without cancelling its siblings. ``limit=1`` serializes the batch.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self.active = 0
        self.peak = 0

    async def _settle(self, factory: TaskFactory[T]) -> Outcome[T]:
        async with self._semaphore:
            self.active += 1
            self.peak = max(self.peak, self.active)
            try:
                return Outcome(value=await factory())
            except Exception as exc:
                return Outcome(error=exc)
            finally:
                self.active -= 1

    async def run(self, factories: Iterable[TaskFactory[T]]) -> List[Outcome[T]]:
        """Executes every factory and returns one outcome per factory, in order."""
        return list(await asyncio.gather(*(self._settle(f) for f in factories)))

    async def map(self, func: Callable[[Any], Awaitable[T]], items: Iterable[Any]) -> List[Outcome[T]]:
        """``run`` over ``func(item)`` for each item."""
        return await self.run([functools.partial(func, item) for item in items])
