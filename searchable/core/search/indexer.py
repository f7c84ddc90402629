"""Index mutation job handler.

Jobs may arrive twice or out of order. Re-indexing re-reads the entity, so
the latest state always wins, and an entity that no longer exists is
deleted from the index instead of failing the job.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from searchable.core.config import get_settings
from searchable.core.job_queue import Job, JobHandler
from searchable.core.search.client import SearchClient
from searchable.core.search.dispatcher import (
    INDEXER_HANDLER,
    IndexMutationJob,
    IndexOperation,
)
from searchable.core.search.projector import project

logger = logging.getLogger(__name__)

# (entity_type, entity_id) -> entity, or None when it no longer exists
EntityLoader = Callable[[str, str], Awaitable[Optional[Any]]]


class Indexer(JobHandler):
    """Applies index mutation jobs to the search index."""

    def __init__(
        self,
        client: SearchClient,
        loader: EntityLoader,
        index: Optional[str] = None,
    ):
        self._client = client
        self._loader = loader
        self._index = index or get_settings().index_name

    @property
    def name(self) -> str:
        return INDEXER_HANDLER

    async def handle(self, job: Job) -> str:
        mutation = IndexMutationJob.from_payload(job.payload)
        return await self.apply(mutation)

    async def apply(self, mutation: IndexMutationJob) -> str:
        """Apply one mutation and return what was done.

        Returns:
            "indexed", "deleted" or "absent" (nothing to delete)
        """
        extra = {
            "operation": mutation.operation.value,
            "entity_type": mutation.entity_type,
            "entity_id": mutation.entity_id,
            "index": self._index,
        }

        if mutation.operation in (IndexOperation.INDEX, IndexOperation.UPDATE):
            entity = await self._loader(mutation.entity_type, mutation.entity_id)
            if entity is None:
                logger.info(
                    f"{mutation.entity_type}#{mutation.entity_id} is gone, removing from index",
                    extra=extra,
                )
                return await self._delete(mutation)

            await self._client.index(self._index, mutation.entity_id, project(entity))
            logger.debug(f"Indexed {mutation.entity_type}#{mutation.entity_id}", extra=extra)
            return "indexed"

        return await self._delete(mutation)

    async def _delete(self, mutation: IndexMutationJob) -> str:
        deleted = await self._client.delete(self._index, mutation.entity_id)
        return "deleted" if deleted else "absent"
