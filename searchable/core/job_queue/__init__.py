"""Job Queue Module.

Asynchronous job runtime used for index mutations:
- Job record with retry policy
- In-memory and Redis queues with dead letters
- Worker
"""

from searchable.core.job_queue.core import (
    JobState,
    RetryPolicy,
    Job,
    create_job,
    JobQueue,
    JobHandler,
    HandlerRegistry,
)
from searchable.core.job_queue.backends import (
    InMemoryJobQueue,
    RedisJobQueue,
)
from searchable.core.job_queue.worker import (
    WorkerStats,
    Worker,
)

__all__ = [
    # Core
    "JobState",
    "RetryPolicy",
    "Job",
    "create_job",
    "JobQueue",
    "JobHandler",
    "HandlerRegistry",
    # Backends
    "InMemoryJobQueue",
    "RedisJobQueue",
    # Worker
    "WorkerStats",
    "Worker",
]
