"""In-process asyncio task queue with retries, backoff, timeouts and deferral."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from cantus.config.enrichment import TaskQueueConfig
from cantus.domain.errors import JobDeferred
from cantus.domain.ports.tasks import TaskOutcome

if TYPE_CHECKING:
    from cantus.domain.ports.tasks import TaskHandler, TaskListener, TaskPayload

log = getLogger(__name__)


@dataclass(slots=True)
class _QueuedTask:
    task_id: str
    task_type: str
    payload: TaskPayload
    key: str | None
    attempts: int = 0
    due: float = field(default_factory=time.monotonic)


def backoff_delay(attempt: int, config: TaskQueueConfig) -> float:
    """Delay before retry number ``attempt`` (1-based): base * 2^(attempt-1), capped."""

    delay = config.backoff_base_seconds * (2 ** max(0, attempt - 1))
    return min(delay, config.backoff_max_seconds)


class InProcessTaskQueue:
    """Fire-and-forget jobs run by a fixed pool of asyncio workers.

    ``submit`` and ``cancel`` are meant to be called from the event loop thread. A job
    raising ``JobDeferred`` is rescheduled after the requested delay without consuming an
    attempt; any other error is retried with exponential backoff until ``max_attempts``
    is reached, after which listeners receive the failure and the job is dropped.
    """

    def __init__(self, config: TaskQueueConfig | None = None) -> None:
        self.config = config or TaskQueueConfig()
        self._handlers: dict[str, TaskHandler] = {}
        self._listeners: list[TaskListener] = []
        self._heap: list[tuple[float, int, str]] = []
        self._pending: dict[str, _QueuedTask] = {}
        self._running: dict[str, _QueuedTask] = {}
        self._keys: dict[str, str] = {}
        self._sequence = itertools.count()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._workers: list[asyncio.Task[None]] = []

    # Port ----------------------------------------------------------------------

    def register(self, task_type: str, handler: TaskHandler) -> None:
        self._handlers[task_type] = handler

    def add_listener(self, listener: TaskListener) -> None:
        self._listeners.append(listener)

    def submit(
        self,
        task_type: str,
        payload: TaskPayload,
        *,
        schedule: datetime | None = None,
        key: str | None = None,
    ) -> str:
        if task_type not in self._handlers:
            raise ValueError(f"No handler registered for task type {task_type!r}")
        if key is not None and key in self._keys:
            existing = self._keys[key]
            log.debug("Task %s already queued as %s", key, existing)
            return existing

        delay = 0.0
        if schedule is not None:
            delay = max(0.0, (schedule - datetime.now(UTC)).total_seconds())
        task = _QueuedTask(
            task_id=uuid.uuid4().hex,
            task_type=task_type,
            payload=dict(payload),
            key=key,
            due=time.monotonic() + delay,
        )
        if key is not None:
            self._keys[key] = task.task_id
        self._enqueue(task)
        return task.task_id

    def cancel(self, task_id: str) -> bool:
        """Drop a job that has not been dispatched yet; running jobs are not interrupted."""

        task = self._pending.pop(task_id, None)
        if task is None:
            return False
        self._release_key(task)
        self._update_idle()
        log.debug("Cancelled task %s (%s)", task_id, task.task_type)
        return True

    # Lifecycle -----------------------------------------------------------------

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def running(self) -> int:
        return len(self._running)

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(), name=f"cantus-task-worker-{index}")
            for index in range(self.config.workers)
        ]

    async def stop(self) -> None:
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

    async def join(self) -> None:
        """Wait until no job is pending or running."""

        await self._idle.wait()

    async def __aenter__(self) -> InProcessTaskQueue:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # Internals -----------------------------------------------------------------

    def _enqueue(self, task: _QueuedTask) -> None:
        self._pending[task.task_id] = task
        heapq.heappush(self._heap, (task.due, next(self._sequence), task.task_id))
        self._idle.clear()
        self._wakeup.set()

    def _release_key(self, task: _QueuedTask) -> None:
        if task.key is not None and self._keys.get(task.key) == task.task_id:
            del self._keys[task.key]

    def _update_idle(self) -> None:
        if not self._pending and not self._running:
            self._idle.set()

    def _pop_due(self) -> _QueuedTask | float | None:
        """Next due task, or the seconds until one is due, or None when empty."""

        while self._heap:
            due, _, task_id = self._heap[0]
            if task_id not in self._pending:
                heapq.heappop(self._heap)
                continue
            now = time.monotonic()
            if due > now:
                return due - now
            heapq.heappop(self._heap)
            return self._pending.pop(task_id)
        return None

    async def _next_task(self) -> _QueuedTask:
        while True:
            found = self._pop_due()
            if isinstance(found, _QueuedTask):
                return found
            self._wakeup.clear()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=found)
            except TimeoutError:
                pass

    async def _worker(self) -> None:
        while True:
            task = await self._next_task()
            self._running[task.task_id] = task
            try:
                await self._execute(task)
            finally:
                self._running.pop(task.task_id, None)
                self._update_idle()

    async def _execute(self, task: _QueuedTask) -> None:
        handler = self._handlers[task.task_type]
        try:
            await asyncio.wait_for(handler(task.payload), timeout=self.config.timeout_seconds)
        except JobDeferred as exc:
            log.info("Deferring task %s (%s) by %.1fs", task.task_id, task.task_type, exc.delay)
            task.due = time.monotonic() + exc.delay
            self._enqueue(task)
            return
        except Exception as exc:  # noqa: BLE001
            self._retry_or_fail(task, exc)
            return
        task.attempts += 1
        self._release_key(task)
        self._notify(task, None)

    def _retry_or_fail(self, task: _QueuedTask, error: Exception) -> None:
        task.attempts += 1
        if isinstance(error, TimeoutError):
            log.warning("Task %s (%s) timed out", task.task_id, task.task_type)
        if task.attempts < self.config.max_attempts:
            delay = backoff_delay(task.attempts, self.config)
            log.warning(
                "Task %s (%s) failed on attempt %d/%d, retrying in %.1fs: %s",
                task.task_id,
                task.task_type,
                task.attempts,
                self.config.max_attempts,
                delay,
                error,
            )
            task.due = time.monotonic() + delay
            self._enqueue(task)
            return
        log.error(
            "Task %s (%s) failed after %d attempt(s): %s",
            task.task_id,
            task.task_type,
            task.attempts,
            error,
        )
        self._release_key(task)
        self._notify(task, error)

    def _notify(self, task: _QueuedTask, error: BaseException | None) -> None:
        outcome = TaskOutcome(
            task_id=task.task_id,
            task_type=task.task_type,
            payload=task.payload,
            attempts=task.attempts,
            error=error,
        )
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:
                log.exception("Task listener failed for %s", task.task_id)


if TYPE_CHECKING:
    from cantus.domain.ports.tasks import TaskQueue

    _queue_check: TaskQueue = InProcessTaskQueue()
