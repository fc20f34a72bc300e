"""Join barrier for concurrently scheduled units of work."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, List
import asyncio
import inspect


class TaskBatchError(RuntimeError):
    """Raised when at least one task of a joined batch failed.

    ``errors`` holds every failure in registration order; ``first`` is the
    failure that is surfaced (and chained as ``__cause__``).
    """

    def __init__(self, errors: List[BaseException]):
        if not errors:
            raise ValueError("TaskBatchError requires at least one error")
        self.errors = list(errors)
        self.first = self.errors[0]
        suffix = "" if len(self.errors) == 1 else f" ({len(self.errors) - 1} more task(s) failed)"
        super().__init__(f"{type(self.first).__name__}: {self.first}{suffix}")


class AsyncTaskManager:
    """Schedules awaitables and joins them with :meth:`await_tasks`.

    The manager is single-use. It gives no transactionality: side effects of
    tasks that ran (including failed ones) stay in place, and a failing task
    never cancels its siblings. Cancellation is left to the caller, which is
    expected to consult its token before scheduling another batch.
    """

    def __init__(self) -> None:
        self._tasks: List[asyncio.Future[Any]] = []
        self._closed = False

    def __len__(self) -> int:
        return len(self._tasks)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Task manager was already awaited; create a new one for another batch")

    def add_task(self, unit: Awaitable[Any]) -> None:
        self._ensure_open()
        self._tasks.append(asyncio.ensure_future(unit))

    def add(self, fn: Callable[..., Any], *args: Any) -> None:
        """Schedule ``fn(*args)``; plain callables run in a worker thread."""

        self._ensure_open()
        if inspect.iscoroutinefunction(fn):
            self.add_task(fn(*args))
        else:
            self.add_task(asyncio.to_thread(fn, *args))

    async def await_tasks(self) -> List[Any]:
        self._ensure_open()
        try:
            settled = 0
            # tasks may register further tasks while we wait
            while settled < len(self._tasks):
                pending = self._tasks[settled:]
                await asyncio.wait(pending)
                settled += len(pending)
        finally:
            self._closed = True

        errors: List[BaseException] = []
        results: List[Any] = []
        for task in self._tasks:
            if task.cancelled():
                errors.append(asyncio.CancelledError())
                continue
            error = task.exception()
            if error is not None:
                errors.append(error)
            else:
                results.append(task.result())

        if errors:
            raise TaskBatchError(errors) from errors[0]
        return results


__all__ = ["AsyncTaskManager", "TaskBatchError"]
