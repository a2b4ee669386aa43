"""Embedding backfill for the cost corpus.

Fills in embeddings for documents that do not have one yet. Documents are
processed one at a time and committed individually, so a failure only loses
the document it happened on and a re-run picks up exactly what is still
missing.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from app.core.config import settings
from app.core.exceptions import BackfillAbortedError
from app.core.gateways import EmbeddingGateway
from app.core.retry_policy import Backoff, RetryPolicy
from app.repositories.cost_doc_repository import CostDocRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def startup_probe_policy() -> RetryPolicy:
    """Policy used while waiting for the database and the embedding service."""
    return RetryPolicy(
        max_attempts=settings.backfill.probe_attempts,
        delay_seconds=settings.backfill.probe_delay_seconds,
        backoff=Backoff.FIXED,
    )


def document_text(title: Optional[str], content: Optional[str]) -> str:
    """Text that gets embedded for a document."""
    return f"{title or ''}\n\n{content or ''}"


@dataclass
class BackfillReport:
    """Outcome of one backfill run."""

    candidates: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_ids: List[int] = field(default_factory=list)
    total_documents: int = 0
    with_embeddings: int = 0

    @property
    def missing(self) -> int:
        return self.total_documents - self.with_embeddings


class EmbeddingBackfillJob:
    """Embeds every corpus document whose embedding is still missing."""

    def __init__(
        self,
        session_factory: Callable,
        embedding_gateway: EmbeddingGateway,
        database_probe: Callable[[], Awaitable[bool]],
        probe_policy: Optional[RetryPolicy] = None,
        delay_seconds: Optional[float] = None,
        progress_every: Optional[int] = None,
    ):
        """Initialize the job.

        Args:
            session_factory: Callable returning an async context manager that yields an AsyncSession
            embedding_gateway: Gateway used to embed document text
            database_probe: Async callable returning True when the database answers
            probe_policy: Startup wait policy for both dependencies
            delay_seconds: Pause between documents
            progress_every: Log progress after this many documents
        """
        self.session_factory = session_factory
        self.embedding_gateway = embedding_gateway
        self.database_probe = database_probe
        self.probe_policy = probe_policy or startup_probe_policy()
        self.delay_seconds = (
            settings.backfill.delay_seconds if delay_seconds is None else delay_seconds
        )
        self.progress_every = progress_every or settings.backfill.progress_every

    async def wait_for_dependencies(self) -> None:
        """Block until the database and the embedding service are reachable.

        Raises:
            BackfillAbortedError: If either stays unreachable for the whole probe policy
        """
        LOGGER.info("Waiting for database...")
        if not await self.probe_policy.wait_until(self.database_probe, name="database"):
            raise BackfillAbortedError(
                f"Database not reachable after {self.probe_policy.max_attempts} attempts"
            )
        LOGGER.info("Database is ready")

        LOGGER.info("Waiting for embedding service...")
        if not await self.probe_policy.wait_until(
            self.embedding_gateway.is_available, name="embedding service"
        ):
            raise BackfillAbortedError(
                f"Embedding service not reachable after {self.probe_policy.max_attempts} attempts"
            )
        LOGGER.info("Embedding service is ready")

    async def run(
        self,
        source_prefix: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> BackfillReport:
        """Wait for dependencies, then embed all documents still missing one.

        Args:
            source_prefix: Only process documents whose source starts with this prefix
            limit: Process at most this many documents

        Returns:
            BackfillReport with per-run counts and final corpus statistics
        """
        await self.wait_for_dependencies()

        report = BackfillReport()
        async with self.session_factory() as session:
            repository = CostDocRepository(session)

            documents = await repository.get_missing_embeddings(source_prefix=source_prefix, limit=limit)
            # Snapshot the fields needed; a rollback expires ORM instances.
            pending = [(doc.id, doc.title, doc.content) for doc in documents]
            report.candidates = len(pending)
            LOGGER.info(
                f"Found {report.candidates} documents without embeddings",
                extra={"source_prefix": source_prefix, "limit": limit},
            )

            for index, (doc_id, title, content) in enumerate(pending, start=1):
                try:
                    embedding = await self.embedding_gateway.embed(document_text(title, content))
                    await repository.update_embedding(doc_id, embedding)
                    await session.commit()
                    report.succeeded += 1
                    LOGGER.debug(f"Embedded document {doc_id}: {title}")
                except Exception as e:
                    LOGGER.error(
                        f"Error processing document {doc_id}: {e}",
                        exc_info=True,
                        extra={"document_id": doc_id},
                    )
                    await session.rollback()
                    report.failed += 1
                    report.failed_ids.append(doc_id)

                if index % self.progress_every == 0:
                    LOGGER.info(f"Progress: {index}/{report.candidates} documents processed")

                if index < report.candidates and self.delay_seconds > 0:
                    await asyncio.sleep(self.delay_seconds)

            stats = await repository.get_embedding_statistics(source_prefix=source_prefix)
            report.total_documents = stats["total_documents"]
            report.with_embeddings = stats["with_embeddings"]

        LOGGER.info(
            f"Embedding backfill complete: {report.succeeded} succeeded, {report.failed} failed",
            extra={
                "total_documents": report.total_documents,
                "with_embeddings": report.with_embeddings,
                "failed_ids": report.failed_ids,
            },
        )
        return report
