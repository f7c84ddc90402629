"""Index mutation dispatch.

Article lifecycle events become ``IndexMutationJob`` messages on the job
queue. Only the operation, entity type and id travel; the indexer re-loads
and re-projects the entity when the job runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from searchable.core.config import get_settings
from searchable.core.job_queue import Job, JobQueue, RetryPolicy, create_job
from searchable.core.search.errors import DispatchError

logger = logging.getLogger(__name__)

INDEXER_HANDLER = "indexer"


class IndexOperation(str, Enum):
    """Index mutation kinds."""
    INDEX = "index"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class IndexMutationJob:
    """Payload of an index mutation job."""
    operation: IndexOperation
    entity_type: str
    entity_id: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "operation": self.operation.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IndexMutationJob":
        """Rebuild from a job payload.

        Raises:
            ValueError: on an unknown operation
        """
        return cls(
            operation=IndexOperation(payload["operation"]),
            entity_type=payload["entity_type"],
            entity_id=str(payload["entity_id"]),
        )

    @classmethod
    def for_entity(cls, operation: IndexOperation, entity: Any) -> "IndexMutationJob":
        """Describe ``operation`` on a persisted entity.

        Raises:
            DispatchError: if the entity has no id yet
        """
        if getattr(entity, "id", None) is None:
            raise DispatchError(
                f"Cannot {operation.value} an unsaved {type(entity).__name__}",
                operation=operation.value,
            )
        return cls(
            operation=operation,
            entity_type=type(entity).__name__,
            entity_id=str(entity.id),
        )


class IndexMutationDispatcher:
    """Enqueues index mutation jobs for article lifecycle events."""

    def __init__(
        self,
        queue: JobQueue,
        queue_name: Optional[str] = None,
        max_retries: Optional[int] = None,
    ):
        settings = get_settings()
        self._queue = queue
        self._queue_name = queue_name or settings.INDEX_QUEUE_NAME
        self._max_retries = (
            settings.INDEX_JOB_MAX_RETRIES if max_retries is None else max_retries
        )

    @property
    def queue_name(self) -> str:
        return self._queue_name

    async def dispatch(self, mutation: IndexMutationJob) -> Job:
        """Enqueue one mutation.

        Raises:
            DispatchError: if the queue refuses or fails; not retried here
        """
        job = create_job(
            queue_name=self._queue_name,
            handler=INDEXER_HANDLER,
            payload=mutation.to_payload(),
            retry=RetryPolicy(max_retries=self._max_retries),
        )
        extra = {
            "operation": mutation.operation.value,
            "entity_type": mutation.entity_type,
            "entity_id": mutation.entity_id,
            "job_id": job.id,
            "queue": self._queue_name,
        }

        try:
            accepted = await self._queue.enqueue(job)
        except Exception as e:
            logger.error(f"Enqueue failed for {mutation.operation.value}: {e}", extra=extra)
            raise DispatchError(
                f"Could not enqueue {mutation.operation.value} of "
                f"{mutation.entity_type}#{mutation.entity_id}: {e}",
                operation=mutation.operation.value,
                entity_id=mutation.entity_id,
            ) from e

        if not accepted:
            logger.error(f"Queue refused {mutation.operation.value} job", extra=extra)
            raise DispatchError(
                f"Queue {self._queue_name} refused {mutation.operation.value} of "
                f"{mutation.entity_type}#{mutation.entity_id}",
                operation=mutation.operation.value,
                entity_id=mutation.entity_id,
            )

        logger.debug(f"Dispatched {mutation.operation.value} job", extra=extra)
        return job

    async def on_create(self, entity: Any) -> Job:
        return await self.dispatch(IndexMutationJob.for_entity(IndexOperation.INDEX, entity))

    async def on_update(self, entity: Any) -> Job:
        return await self.dispatch(IndexMutationJob.for_entity(IndexOperation.UPDATE, entity))

    async def on_delete(self, entity: Any) -> Job:
        return await self.dispatch(IndexMutationJob.for_entity(IndexOperation.DELETE, entity))

    async def on_touch(self, entity: Any) -> Job:
        """Freshness bump without field changes; re-indexes like an update."""
        return await self.dispatch(IndexMutationJob.for_entity(IndexOperation.UPDATE, entity))
