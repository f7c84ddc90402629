"""Job Queue Worker.

Runs claimed jobs through their registered handler and reports the outcome
back to the queue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from searchable.core.job_queue.core import HandlerRegistry, Job, JobQueue

logger = logging.getLogger(__name__)


@dataclass
class WorkerStats:
    """Counters since the worker was created."""
    jobs_processed: int = 0
    jobs_succeeded: int = 0
    jobs_failed: int = 0


class Worker:
    """Processes jobs from one or more queues."""

    def __init__(
        self,
        queue: JobQueue,
        registry: HandlerRegistry,
        queue_names: Sequence[str],
    ):
        self._queue = queue
        self._registry = registry
        self._queue_names: List[str] = list(queue_names)
        self.stats = WorkerStats()

    async def drain(self, queue_name: Optional[str] = None) -> int:
        """Run ready jobs until the queue is empty.

        Jobs scheduled for a later retry are left for a later call.

        Returns:
            Number of jobs processed
        """
        names = [queue_name] if queue_name else self._queue_names
        processed = 0
        for name in names:
            while True:
                job = await self._queue.dequeue(name)
                if job is None:
                    break
                await self._run(job)
                processed += 1
        return processed

    async def _run(self, job: Job) -> None:
        self.stats.jobs_processed += 1
        handler = self._registry.get(job.handler)

        try:
            if handler is None:
                raise LookupError(f"Unknown handler: {job.handler}")
            await handler.handle(job)
        except Exception as e:
            logger.error(
                f"Job {job.id} failed (attempt {job.attempts}): {e}",
                extra={"job_id": job.id, "queue": job.queue_name},
            )
            self.stats.jobs_failed += 1
            await self._queue.fail(job, str(e))
        else:
            self.stats.jobs_succeeded += 1
            await self._queue.complete(job)
