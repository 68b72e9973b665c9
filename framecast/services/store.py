"""Job status store backed by a Supabase table of JSON documents."""

import copy
import logging
from typing import Any, Optional

from framecast.models.job import Job, utcnow
from framecast.utils.errors import StorePersistError
from framecast.utils.retry import with_retry

logger = logging.getLogger(__name__)


class JobStore:
    """
    Key-value store of job documents.

    Implementations only need ``put`` and ``get``; reads may lag behind
    writes (eventual consistency) and there are no transactions.
    """

    async def put(self, key: str, document: dict[str, Any]) -> None:
        raise NotImplementedError

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    async def save_job(self, job: Job) -> None:
        """Persist the full job record under its job id."""
        await self.put(job.job_id, job.to_document())

    async def load_job(self, job_id: str) -> Optional[Job]:
        """
        Load a job record.

        Returns:
            Job if a valid record exists, None otherwise
        """
        document = await self.get(job_id)
        if document is None:
            return None
        try:
            return Job.from_document(document)
        except ValueError as e:
            logger.error(f"Corrupt job document for {job_id}: {e}")
            return None


class SupabaseJobStore(JobStore):
    """Job store using one Supabase row per job (``job_id``, ``document``)."""

    def __init__(
        self,
        supabase_client: Any,
        table: str = "video_processor_jobs",
        max_attempts: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        """
        Initialize the SupabaseJobStore.

        Args:
            supabase_client: Supabase client instance
            table: Table holding the job documents
            max_attempts: Attempts per write before giving up
            base_delay: Base backoff delay between write attempts
        """
        self.supabase = supabase_client
        self.table = table
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    async def _upsert(self, key: str, document: dict[str, Any]) -> None:
        result = (
            self.supabase.table(self.table)
            .upsert(
                {
                    "job_id": key,
                    "document": document,
                    "updated_at": utcnow().isoformat(),
                },
                on_conflict="job_id",
            )
            .execute()
        )
        if not result.data:
            raise StorePersistError(f"Upsert returned empty result for {key}")

    async def put(self, key: str, document: dict[str, Any]) -> None:
        """
        Write a job document, retrying with backoff.

        Raises:
            StorePersistError: If every attempt fails
        """
        upsert = with_retry(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=10.0,
        )(self._upsert)
        try:
            await upsert(key, document)
        except StorePersistError:
            raise
        except Exception as e:
            raise StorePersistError(f"Failed to write job {key}: {e}") from e

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        try:
            result = (
                self.supabase.table(self.table)
                .select("document")
                .eq("job_id", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to read job {key}: {e}")
            return None

        if not result.data:
            return None
        return result.data[0].get("document")


class InMemoryJobStore(JobStore):
    """Process-local job store for development and tests."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    async def put(self, key: str, document: dict[str, Any]) -> None:
        self._documents[key] = copy.deepcopy(document)

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    def __len__(self) -> int:
        return len(self._documents)


def create_job_store() -> JobStore:
    """
    Create the job store configured by application settings.

    Falls back to an in-memory store when Supabase is not configured.
    """
    from framecast.config import get_settings

    settings = get_settings()
    if not (settings.supabase_url and settings.supabase_key):
        logger.warning("Supabase not configured; job status is kept in memory only")
        return InMemoryJobStore()

    from supabase import create_client

    supabase_client = create_client(settings.supabase_url, settings.supabase_key)
    return SupabaseJobStore(
        supabase_client=supabase_client,
        table=settings.jobs_table,
        max_attempts=settings.max_retry_attempts,
        base_delay=settings.base_delay_seconds,
    )
