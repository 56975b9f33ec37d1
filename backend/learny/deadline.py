"""Cancellable pending work with a single deadline combinator."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Coroutine, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class DeadlineOutcome(Generic[T]):
    value: Optional[T]
    timed_out: bool


async def with_deadline(awaitable: Awaitable[T], timeout: float) -> DeadlineOutcome[T]:
    """Race ``awaitable`` against ``timeout`` seconds.

    When the deadline wins, the underlying work is cancelled and awaited so
    a late result can never surface anywhere. Exceptions raised by the work
    before the deadline propagate unchanged.
    """
    try:
        value = await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        return DeadlineOutcome(value=None, timed_out=True)
    return DeadlineOutcome(value=value, timed_out=False)


class PendingTask(Generic[T]):
    """Handle on a scheduled coroutine that can be awaited with a deadline or cancelled."""

    def __init__(self, coro: Coroutine[object, object, T], *, name: Optional[str] = None) -> None:
        self._task: asyncio.Task[T] = asyncio.ensure_future(coro)
        if name:
            self._task.set_name(name)

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> bool:
        return self._task.cancel()

    async def result_within(self, timeout: float) -> DeadlineOutcome[T]:
        return await with_deadline(self._task, timeout)

    async def wait(self) -> T:
        return await self._task


__all__ = ["DeadlineOutcome", "PendingTask", "with_deadline"]
