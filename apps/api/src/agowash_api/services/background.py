"""Best-effort task submission for side effects that must not affect results."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable

from loguru import logger


@dataclass(slots=True)
class TaskFailure:
    name: str
    error: str
    failed_at: float

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "error": self.error, "failedAt": self.failed_at}


class BackgroundTaskRunner:
    """Runs fire-and-forget coroutines and records their failures."""

    def __init__(self, *, failure_log_size: int = 50) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failures: deque[TaskFailure] = deque(maxlen=failure_log_size)
        self._completed = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def failures(self) -> list[TaskFailure]:
        return list(self._failures)

    def submit(self, name: str, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(self._run(name, coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, coro: Awaitable[Any]) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.warning("Background task cancelled", task=name)
            raise
        except Exception as exc:
            self._failures.append(TaskFailure(name=name, error=str(exc), failed_at=time.time()))
            logger.exception("Background task failed", task=name)
        else:
            self._completed += 1

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight tasks; cancel stragglers after ``timeout``.

        Returns ``True`` when every task finished on its own.
        """

        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        still_running: set[asyncio.Task[Any]] = set()
        # Tasks may submit follow-up work, so wait until the set stays empty.
        while self._tasks:
            remaining = None if deadline is None else max(deadline - loop.time(), 0)
            _, still_running = await asyncio.wait(set(self._tasks), timeout=remaining)
            if still_running:
                break
        if still_running:
            logger.warning("Cancelling background tasks after grace period", count=len(still_running))
            for task in still_running:
                task.cancel()
            await asyncio.gather(*still_running, return_exceptions=True)
            return False
        return True

    def snapshot(self) -> dict[str, Any]:
        return {
            "pending": self.pending,
            "completed": self._completed,
            "failures": [failure.as_dict() for failure in self._failures],
        }


__all__ = ["BackgroundTaskRunner", "TaskFailure"]
