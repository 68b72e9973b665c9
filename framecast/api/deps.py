"""FastAPI dependencies for Framecast API."""

from functools import lru_cache

from framecast.services.orchestrator import JobOrchestrator, create_orchestrator
from framecast.services.retrieval import ResultRetrievalService, create_retrieval_service
from framecast.services.store import JobStore, create_job_store


@lru_cache
def get_job_store() -> JobStore:
    """Dependency for the process-wide job status store."""
    return create_job_store()


@lru_cache
def get_orchestrator() -> JobOrchestrator:
    """Dependency for the job orchestrator."""
    return create_orchestrator(get_job_store())


@lru_cache
def get_retrieval_service() -> ResultRetrievalService:
    """Dependency for the result retrieval service."""
    return create_retrieval_service(get_job_store())
