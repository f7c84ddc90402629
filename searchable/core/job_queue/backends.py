"""Job Queue Backends.

- In-memory queue (tests, single process)
- Redis-based queue (production)
"""

from __future__ import annotations

import heapq
import json
import logging
import time
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional, Tuple

import redis.asyncio as redis

from searchable.core.job_queue.core import Job, JobQueue, JobState

logger = logging.getLogger(__name__)


class InMemoryJobQueue(JobQueue):
    """In-memory FIFO job queue.

    Only jobs still pending, running or waiting for a retry are tracked;
    completed jobs are dropped and dead letters are capped at
    ``dead_letter_limit`` per queue.
    """

    def __init__(self, dead_letter_limit: int = 1000):
        self._ready: Dict[str, Deque[str]] = defaultdict(deque)
        self._retrying: Dict[str, List[Tuple[float, str]]] = defaultdict(list)
        self._jobs: Dict[str, Job] = {}
        self._dead_letter: Dict[str, Deque[Job]] = defaultdict(
            lambda: deque(maxlen=dead_letter_limit)
        )

    async def enqueue(self, job: Job) -> bool:
        job.state = JobState.PENDING
        self._jobs[job.id] = job
        self._ready[job.queue_name].append(job.id)
        logger.debug(
            f"Enqueued job {job.id} to {job.queue_name}",
            extra={"job_id": job.id, "queue": job.queue_name},
        )
        return True

    async def dequeue(self, queue_name: str) -> Optional[Job]:
        self._promote_due(queue_name)

        ready = self._ready[queue_name]
        while ready:
            job = self._jobs.get(ready.popleft())
            if job and job.state == JobState.PENDING:
                job.state = JobState.RUNNING
                job.attempts += 1
                return job
        return None

    def _promote_due(self, queue_name: str) -> None:
        now = time.time()
        retrying = self._retrying[queue_name]
        while retrying and retrying[0][0] <= now:
            _, job_id = heapq.heappop(retrying)
            job = self._jobs.get(job_id)
            if job and job.state == JobState.RETRYING:
                job.state = JobState.PENDING
                self._ready[queue_name].append(job_id)

    async def complete(self, job: Job) -> bool:
        if self._jobs.pop(job.id, None) is None:
            return False
        job.state = JobState.COMPLETED
        return True

    async def fail(self, job: Job, error: str) -> bool:
        if job.id not in self._jobs:
            return False

        if job.record_failure(error) == JobState.RETRYING:
            heapq.heappush(self._retrying[job.queue_name], (job.run_after, job.id))
            logger.debug(f"Job {job.id} retries after {job.run_after}")
        else:
            del self._jobs[job.id]
            self._dead_letter[job.queue_name].append(job)
            logger.warning(
                f"Job {job.id} moved to dead letter: {error}",
                extra={"job_id": job.id, "queue": job.queue_name},
            )
        return True

    async def get_queue_size(self, queue_name: str) -> int:
        return sum(
            1 for job_id in self._ready[queue_name]
            if job_id in self._jobs and self._jobs[job_id].state == JobState.PENDING
        )

    async def get_dead_letter_jobs(self, queue_name: str, limit: int = 100) -> List[Job]:
        return list(self._dead_letter[queue_name])[:limit]


class RedisJobQueue(JobQueue):
    """Redis-based job queue.

    Ready job ids live in a list per queue (LPUSH/RPOP, oldest first),
    retries in a sorted set scored by due time, job bodies in plain keys.
    """

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        url: Optional[str] = None,
        key_prefix: str = "jobqueue:",
    ):
        if redis_client is None:
            from searchable.core.config import get_settings

            redis_client = redis.from_url(url or get_settings().REDIS_URL)
        self._redis = redis_client
        self._prefix = key_prefix

    def _key(self, kind: str, name: str) -> str:
        return f"{self._prefix}{kind}:{name}"

    async def _save(self, job: Job) -> None:
        await self._redis.set(self._key("job", job.id), json.dumps(job.to_dict()))

    async def _load(self, job_id: Any) -> Optional[Job]:
        if isinstance(job_id, bytes):
            job_id = job_id.decode()
        raw = await self._redis.get(self._key("job", job_id))
        if raw is None:
            return None
        return Job.from_dict(json.loads(raw))

    async def enqueue(self, job: Job) -> bool:
        job.state = JobState.PENDING
        await self._save(job)
        await self._redis.lpush(self._key("queue", job.queue_name), job.id)
        logger.debug(
            f"Enqueued job {job.id}",
            extra={"job_id": job.id, "queue": job.queue_name},
        )
        return True

    async def _promote_due(self, queue_name: str) -> None:
        scheduled = self._key("scheduled", queue_name)
        for job_id in await self._redis.zrangebyscore(scheduled, 0, time.time()):
            # Only the caller that removes the entry promotes it
            if await self._redis.zrem(scheduled, job_id):
                await self._redis.lpush(self._key("queue", queue_name), job_id)

    async def dequeue(self, queue_name: str) -> Optional[Job]:
        await self._promote_due(queue_name)

        job_id = await self._redis.rpop(self._key("queue", queue_name))
        if job_id is None:
            return None

        job = await self._load(job_id)
        if job is None:
            logger.warning(f"Job body missing for {job_id!r}, skipping")
            return None

        job.state = JobState.RUNNING
        job.attempts += 1
        await self._save(job)
        return job

    async def complete(self, job: Job) -> bool:
        job.state = JobState.COMPLETED
        await self._redis.delete(self._key("job", job.id))
        return True

    async def fail(self, job: Job, error: str) -> bool:
        state = job.record_failure(error)
        await self._save(job)

        if state == JobState.RETRYING:
            await self._redis.zadd(
                self._key("scheduled", job.queue_name), {job.id: job.run_after}
            )
        else:
            await self._redis.lpush(self._key("dead", job.queue_name), job.id)
            logger.warning(
                f"Job {job.id} moved to dead letter: {error}",
                extra={"job_id": job.id, "queue": job.queue_name},
            )
        return True

    async def get_queue_size(self, queue_name: str) -> int:
        return await self._redis.llen(self._key("queue", queue_name))

    async def get_dead_letter_jobs(self, queue_name: str, limit: int = 100) -> List[Job]:
        # LPUSH puts the newest first
        job_ids = await self._redis.lrange(self._key("dead", queue_name), -limit, -1)
        jobs = []
        for job_id in reversed(job_ids):
            job = await self._load(job_id)
            if job:
                jobs.append(job)
        return jobs
