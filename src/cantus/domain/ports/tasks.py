"""Port for the background task queue."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

type TaskPayload = Mapping[str, str]
type TaskHandler = Callable[[TaskPayload], Awaitable[object]]


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    task_id: str
    task_type: str
    payload: TaskPayload
    attempts: int
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


type TaskListener = Callable[[TaskOutcome], None]


@runtime_checkable
class TaskQueue(Protocol):
    """Fire-and-forget job submission with completion/failure notification."""

    def register(self, task_type: str, handler: TaskHandler) -> None: ...

    def submit(
        self,
        task_type: str,
        payload: TaskPayload,
        *,
        schedule: datetime | None = None,
        key: str | None = None,
    ) -> str: ...

    def cancel(self, task_id: str) -> bool: ...

    def add_listener(self, listener: TaskListener) -> None: ...
