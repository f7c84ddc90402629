"""Unit tests for the job queue runtime."""

import asyncio
import json
from unittest.mock import AsyncMock


class TestJob:
    """Test Job and create_job."""

    def test_create_job(self):
        """Test job creation defaults."""
        from searchable.core.job_queue import JobState, create_job

        job = create_job("elasticsearch", "indexer", {"operation": "index"})

        assert job.state == JobState.PENDING
        assert job.attempts == 0
        assert job.retry.max_retries == 0
        assert job.run_after is None

    def test_unique_ids(self):
        """Test generated IDs differ."""
        from searchable.core.job_queue import create_job

        ids = {create_job("q", "h", {}).id for _ in range(50)}

        assert len(ids) == 50

    def test_serialization(self):
        """Test to_dict/from_dict survive a JSON round trip."""
        from searchable.core.job_queue import Job, RetryPolicy, create_job

        job = create_job(
            "elasticsearch",
            "indexer",
            {"operation": "delete", "entity_type": "Article", "entity_id": "9"},
            retry=RetryPolicy(max_retries=2),
        )
        job.attempts = 1
        job.record_failure("boom", now=100.0)

        restored = Job.from_dict(json.loads(json.dumps(job.to_dict())))

        assert restored == job

    def test_first_failure_without_retries_is_dead(self):
        """Test the first run does not count as a retry."""
        from searchable.core.job_queue import JobState, create_job

        job = create_job("q", "h", {})
        job.attempts = 1

        assert job.record_failure("boom") == JobState.DEAD
        assert job.last_error == "boom"
        assert job.run_after is None

    def test_retry_with_backoff(self):
        """Test retry delays grow by the backoff factor."""
        from searchable.core.job_queue import JobState, RetryPolicy, create_job

        job = create_job(
            "q", "h", {},
            retry=RetryPolicy(max_retries=2, delay_seconds=2.0, backoff_factor=3.0),
        )

        job.attempts = 1
        assert job.record_failure("a", now=0.0) == JobState.RETRYING
        assert job.run_after == 2.0

        job.attempts = 2
        assert job.record_failure("b", now=0.0) == JobState.RETRYING
        assert job.run_after == 6.0

        job.attempts = 3
        assert job.record_failure("c", now=0.0) == JobState.DEAD


class TestHandlerRegistry:
    """Test HandlerRegistry."""

    def test_register_and_get(self):
        """Test handlers are looked up by name."""
        from searchable.core.job_queue import HandlerRegistry, JobHandler

        class EchoHandler(JobHandler):
            @property
            def name(self):
                return "echo"

            async def handle(self, job):
                return job.payload

        registry = HandlerRegistry()
        handler = EchoHandler()
        registry.register(handler)

        assert registry.get("echo") is handler
        assert registry.get("missing") is None


class TestInMemoryJobQueue:
    """Test InMemoryJobQueue."""

    def test_enqueue_dequeue_complete(self):
        """Test basic flow and that completed jobs are forgotten."""
        from searchable.core.job_queue import InMemoryJobQueue, JobState, create_job

        queue = InMemoryJobQueue()
        job = create_job("q", "h", {})

        async def run():
            assert await queue.enqueue(job) is True
            assert await queue.get_queue_size("q") == 1
            got = await queue.dequeue("q")
            empty = await queue.dequeue("q")
            first = await queue.complete(got)
            second = await queue.complete(got)
            return got, empty, first, second

        got, empty, first, second = asyncio.run(run())

        assert got is job
        assert empty is None
        assert (first, second) == (True, False)
        assert job.state == JobState.COMPLETED
        assert job.attempts == 1
        assert queue._jobs == {}

    def test_fifo_order(self):
        """Test jobs are claimed oldest first."""
        from searchable.core.job_queue import InMemoryJobQueue, create_job

        queue = InMemoryJobQueue()
        first = create_job("q", "h", {"n": 1})
        second = create_job("q", "h", {"n": 2})

        async def run():
            await queue.enqueue(first)
            await queue.enqueue(second)
            return [await queue.dequeue("q"), await queue.dequeue("q")]

        assert asyncio.run(run()) == [first, second]

    def test_duplicate_jobs_are_kept(self):
        """Test identical payloads are not deduplicated."""
        from searchable.core.job_queue import InMemoryJobQueue, create_job

        queue = InMemoryJobQueue()
        payload = {"operation": "delete", "entity_id": "1"}

        async def run():
            await queue.enqueue(create_job("q", "h", dict(payload)))
            await queue.enqueue(create_job("q", "h", dict(payload)))
            return await queue.get_queue_size("q")

        assert asyncio.run(run()) == 2

    def test_retry_then_dead_letter(self):
        """Test a failing job is retried once then dead-lettered."""
        from searchable.core.job_queue import (
            InMemoryJobQueue,
            JobState,
            RetryPolicy,
            create_job,
        )

        queue = InMemoryJobQueue()
        job = create_job("q", "h", {}, retry=RetryPolicy(max_retries=1, delay_seconds=0))

        async def run():
            await queue.enqueue(job)

            first = await queue.dequeue("q")
            await queue.fail(first, "boom")
            assert first.state == JobState.RETRYING

            second = await queue.dequeue("q")
            assert second is job
            await queue.fail(second, "boom again")

            return await queue.get_dead_letter_jobs("q")

        dead = asyncio.run(run())

        assert dead == [job]
        assert job.state == JobState.DEAD
        assert job.attempts == 2
        assert job.last_error == "boom again"
        assert queue._jobs == {}

    def test_retry_waits_until_due(self):
        """Test a retry is not claimed before its delay has passed."""
        from searchable.core.job_queue import InMemoryJobQueue, RetryPolicy, create_job

        queue = InMemoryJobQueue()
        job = create_job("q", "h", {}, retry=RetryPolicy(max_retries=1, delay_seconds=60))

        async def run():
            await queue.enqueue(job)
            await queue.fail(await queue.dequeue("q"), "boom")
            return await queue.dequeue("q")

        assert asyncio.run(run()) is None

    def test_dead_letter_is_capped(self):
        """Test only the newest dead letters are kept."""
        from searchable.core.job_queue import InMemoryJobQueue, create_job

        queue = InMemoryJobQueue(dead_letter_limit=2)
        jobs = [create_job("q", "h", {"n": i}) for i in range(3)]

        async def run():
            for job in jobs:
                await queue.enqueue(job)
                await queue.fail(await queue.dequeue("q"), "boom")
            return await queue.get_dead_letter_jobs("q")

        assert asyncio.run(run()) == jobs[1:]

    def test_unknown_job(self):
        """Test complete/fail on a job the queue never saw."""
        from searchable.core.job_queue import InMemoryJobQueue, create_job

        queue = InMemoryJobQueue()
        job = create_job("q", "h", {})

        async def run():
            return await queue.complete(job), await queue.fail(job, "x")

        assert asyncio.run(run()) == (False, False)


class TestRedisJobQueue:
    """Test RedisJobQueue against a mocked redis client."""

    def test_enqueue(self):
        """Test enqueue stores the body and pushes the ID."""
        from searchable.core.job_queue import RedisJobQueue, create_job

        redis_client = AsyncMock()
        queue = RedisJobQueue(redis_client=redis_client, key_prefix="t:")
        job = create_job("elasticsearch", "indexer", {"operation": "index"})

        assert asyncio.run(queue.enqueue(job)) is True

        key, body = redis_client.set.await_args.args
        assert key == f"t:job:{job.id}"
        assert json.loads(body)["payload"] == {"operation": "index"}
        redis_client.lpush.assert_awaited_once_with("t:queue:elasticsearch", job.id)

    def test_dequeue(self):
        """Test dequeue pops, loads and marks the job running."""
        from searchable.core.job_queue import JobState, RedisJobQueue, create_job

        job = create_job("q", "h", {"x": 1})
        redis_client = AsyncMock()
        redis_client.zrangebyscore.return_value = []
        redis_client.rpop.return_value = job.id.encode()
        redis_client.get.return_value = json.dumps(job.to_dict()).encode()
        queue = RedisJobQueue(redis_client=redis_client, key_prefix="t:")

        got = asyncio.run(queue.dequeue("q"))

        assert got.id == job.id
        assert got.payload == {"x": 1}
        assert got.state == JobState.RUNNING
        assert got.attempts == 1
        redis_client.rpop.assert_awaited_once_with("t:queue:q")

    def test_dequeue_empty(self):
        """Test dequeue on an empty queue."""
        from searchable.core.job_queue import RedisJobQueue

        redis_client = AsyncMock()
        redis_client.zrangebyscore.return_value = []
        redis_client.rpop.return_value = None
        queue = RedisJobQueue(redis_client=redis_client)

        assert asyncio.run(queue.dequeue("q")) is None

    def test_promotes_due_retries(self):
        """Test due retries move back onto the ready list."""
        from searchable.core.job_queue import RedisJobQueue

        redis_client = AsyncMock()
        redis_client.zrangebyscore.return_value = [b"job_1"]
        redis_client.zrem.return_value = 1
        redis_client.rpop.return_value = None
        queue = RedisJobQueue(redis_client=redis_client, key_prefix="t:")

        asyncio.run(queue.dequeue("q"))

        redis_client.zrem.assert_awaited_once_with("t:scheduled:q", b"job_1")
        redis_client.lpush.assert_awaited_once_with("t:queue:q", b"job_1")

    def test_complete_deletes_body(self):
        """Test completed jobs do not linger in redis."""
        from searchable.core.job_queue import JobState, RedisJobQueue, create_job

        redis_client = AsyncMock()
        queue = RedisJobQueue(redis_client=redis_client, key_prefix="t:")
        job = create_job("q", "h", {})

        asyncio.run(queue.complete(job))

        assert job.state == JobState.COMPLETED
        redis_client.delete.assert_awaited_once_with(f"t:job:{job.id}")

    def test_fail_without_budget_dead_letters(self):
        """Test a job with no retries left goes to the dead letter list."""
        from searchable.core.job_queue import JobState, RedisJobQueue, create_job

        redis_client = AsyncMock()
        queue = RedisJobQueue(redis_client=redis_client, key_prefix="t:")
        job = create_job("q", "h", {})
        job.attempts = 1

        asyncio.run(queue.fail(job, "boom"))

        assert job.state == JobState.DEAD
        redis_client.lpush.assert_awaited_once_with("t:dead:q", job.id)
        redis_client.zadd.assert_not_awaited()

    def test_fail_with_budget_schedules_retry(self):
        """Test a retryable failure is scheduled in the sorted set."""
        from searchable.core.job_queue import JobState, RedisJobQueue, RetryPolicy, create_job

        redis_client = AsyncMock()
        queue = RedisJobQueue(redis_client=redis_client, key_prefix="t:")
        job = create_job("q", "h", {}, retry=RetryPolicy(max_retries=2))
        job.attempts = 1

        asyncio.run(queue.fail(job, "boom"))

        assert job.state == JobState.RETRYING
        key, mapping = redis_client.zadd.await_args.args
        assert key == "t:scheduled:q"
        assert mapping == {job.id: job.run_after}

    def test_dead_letter_jobs_oldest_first(self):
        """Test dead letters are read back in the order they died."""
        from searchable.core.job_queue import RedisJobQueue, create_job

        old, new = create_job("q", "h", {"n": 1}), create_job("q", "h", {"n": 2})
        bodies = {
            f"t:job:{old.id}": json.dumps(old.to_dict()),
            f"t:job:{new.id}": json.dumps(new.to_dict()),
        }
        redis_client = AsyncMock()
        redis_client.lrange.return_value = [new.id.encode(), old.id.encode()]
        redis_client.get.side_effect = lambda key: bodies.get(key)
        queue = RedisJobQueue(redis_client=redis_client, key_prefix="t:")

        jobs = asyncio.run(queue.get_dead_letter_jobs("q", limit=10))

        assert [j.id for j in jobs] == [old.id, new.id]
        redis_client.lrange.assert_awaited_once_with("t:dead:q", -10, -1)


class TestWorker:
    """Test Worker."""

    def _worker(self, handler_error=None):
        from searchable.core.job_queue import (
            HandlerRegistry,
            InMemoryJobQueue,
            JobHandler,
            Worker,
        )

        class StubHandler(JobHandler):
            def __init__(self):
                self.seen = []

            @property
            def name(self):
                return "stub"

            async def handle(self, job):
                self.seen.append(job.id)
                if handler_error:
                    raise handler_error

        handler = StubHandler()
        registry = HandlerRegistry()
        registry.register(handler)
        queue = InMemoryJobQueue()
        return queue, handler, Worker(queue, registry, ["q"])

    def test_drain_completes_jobs(self):
        """Test drain processes every ready job."""
        from searchable.core.job_queue import JobState, create_job

        queue, handler, worker = self._worker()
        jobs = [create_job("q", "stub", {"n": i}) for i in range(3)]

        async def run():
            for job in jobs:
                await queue.enqueue(job)
            return await worker.drain()

        assert asyncio.run(run()) == 3
        assert all(j.state == JobState.COMPLETED for j in jobs)
        assert handler.seen == [j.id for j in jobs]
        assert worker.stats.jobs_succeeded == 3

    def test_drain_named_queue(self):
        """Test drain can target a queue the worker was not configured with."""
        from searchable.core.job_queue import create_job

        queue, handler, worker = self._worker()

        async def run():
            await queue.enqueue(create_job("other", "stub", {}))
            return await worker.drain(), await worker.drain("other")

        assert asyncio.run(run()) == (0, 1)

    def test_handler_error_fails_job(self):
        """Test handler exceptions are recorded on the job."""
        from searchable.core.job_queue import JobState, create_job

        queue, _, worker = self._worker(handler_error=RuntimeError("nope"))
        job = create_job("q", "stub", {})

        async def run():
            await queue.enqueue(job)
            await worker.drain()

        asyncio.run(run())

        assert job.state == JobState.DEAD
        assert job.last_error == "nope"
        assert worker.stats.jobs_failed == 1

    def test_unknown_handler_fails_job(self):
        """Test jobs for unregistered handlers are failed."""
        from searchable.core.job_queue import JobState, create_job

        queue, _, worker = self._worker()
        job = create_job("q", "missing", {})

        async def run():
            await queue.enqueue(job)
            await worker.drain()

        asyncio.run(run())

        assert job.state == JobState.DEAD
        assert "Unknown handler" in job.last_error

    def test_pending_retry_is_left_for_later(self):
        """Test drain stops at jobs scheduled for a later retry."""
        from searchable.core.job_queue import JobState, RetryPolicy, create_job

        queue, handler, worker = self._worker(handler_error=RuntimeError("flaky"))
        job = create_job("q", "stub", {}, retry=RetryPolicy(max_retries=3, delay_seconds=60))

        async def run():
            await queue.enqueue(job)
            return await worker.drain()

        assert asyncio.run(run()) == 1
        assert job.state == JobState.RETRYING
        assert len(handler.seen) == 1
