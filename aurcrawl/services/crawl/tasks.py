from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class TaskOutcome(Generic[T]):
    index: int
    result: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedTaskGroup(Generic[T]):
    """Runs independent units of work with at most ``limit`` in flight.

    Units are submitted as zero-argument coroutine factories so that nothing
    starts before a slot is free. ``join`` waits for every unit and returns one
    TaskOutcome per unit in submission order; a failing unit never cancels its
    siblings.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self._sem = asyncio.Semaphore(limit)
        self._units: List[Callable[[], Awaitable[T]]] = []

    def submit(self, factory: Callable[[], Awaitable[T]]) -> int:
        self._units.append(factory)
        return len(self._units) - 1

    def __len__(self) -> int:
        return len(self._units)

    async def _run(self, index: int, factory: Callable[[], Awaitable[T]]) -> TaskOutcome[T]:
        async with self._sem:
            try:
                return TaskOutcome(index=index, result=await factory())
            except Exception as exc:
                return TaskOutcome(index=index, error=exc)

    async def join(self) -> List[TaskOutcome[T]]:
        units, self._units = self._units, []
        outcomes: List[Any] = await asyncio.gather(*(self._run(i, f) for i, f in enumerate(units)))
        return sorted(outcomes, key=lambda o: o.index)
