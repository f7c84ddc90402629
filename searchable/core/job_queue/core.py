"""Job Queue Core.

The job record carried through the queue, its retry policy, the queue
contract and handler lookup. Index mutation jobs carry an
``IndexMutationJob`` payload; the runtime itself never looks inside it.
"""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class JobState(str, Enum):
    """Lifecycle of a job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    RETRYING = "retrying"
    DEAD = "dead"


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how late a failed job runs again."""
    max_retries: int = 0
    delay_seconds: float = 5.0
    backoff_factor: float = 2.0

    def delay(self, attempts: int) -> float:
        """Seconds to wait after the ``attempts``-th failed run."""
        return self.delay_seconds * self.backoff_factor ** max(attempts - 1, 0)


@dataclass
class Job:
    """A unit of work on a named queue."""
    id: str
    queue_name: str
    handler: str
    payload: Dict[str, Any]
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    state: JobState = JobState.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    run_after: Optional[float] = None  # epoch seconds, set while RETRYING

    def record_failure(self, error: str, now: Optional[float] = None) -> JobState:
        """Move to RETRYING or DEAD after a failed run.

        The first run is not a retry: a job with ``max_retries=0`` dies on its
        first failure.
        """
        self.last_error = error
        if self.attempts <= self.retry.max_retries:
            now = time.time() if now is None else now
            self.state = JobState.RETRYING
            self.run_after = now + self.retry.delay(self.attempts)
        else:
            self.state = JobState.DEAD
            self.run_after = None
        return self.state

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        data = dict(data)
        data["retry"] = RetryPolicy(**data.get("retry", {}))
        data["state"] = JobState(data.get("state", JobState.PENDING.value))
        return cls(**data)


def create_job(
    queue_name: str,
    handler: str,
    payload: Dict[str, Any],
    retry: Optional[RetryPolicy] = None,
) -> Job:
    """Create a new pending job with a random id."""
    return Job(
        id=uuid.uuid4().hex,
        queue_name=queue_name,
        handler=handler,
        payload=payload,
        retry=retry or RetryPolicy(),
    )


class JobQueue(ABC):
    """Queue contract.

    Delivery is at-least-once and unordered across jobs; handlers must be
    idempotent.
    """

    @abstractmethod
    async def enqueue(self, job: Job) -> bool:
        """Add a job; False if the queue refuses it."""

    @abstractmethod
    async def dequeue(self, queue_name: str) -> Optional[Job]:
        """Claim the next ready job, or None."""

    @abstractmethod
    async def complete(self, job: Job) -> bool:
        """Mark a claimed job as done and forget it."""

    @abstractmethod
    async def fail(self, job: Job, error: str) -> bool:
        """Record a failed run; the job is retried later or dead-lettered."""

    @abstractmethod
    async def get_queue_size(self, queue_name: str) -> int:
        """Number of jobs ready to run."""

    @abstractmethod
    async def get_dead_letter_jobs(self, queue_name: str, limit: int = 100) -> List[Job]:
        """Jobs that ran out of retries, oldest first."""


class JobHandler(ABC):
    """Runs jobs addressed to ``name``."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def handle(self, job: Job) -> Any:
        pass


class HandlerRegistry:
    """Handler lookup by name."""

    def __init__(self):
        self._handlers: Dict[str, JobHandler] = {}

    def register(self, handler: JobHandler) -> None:
        self._handlers[handler.name] = handler

    def get(self, name: str) -> Optional[JobHandler]:
        return self._handlers.get(name)
