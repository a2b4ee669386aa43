from contextlib import asynccontextmanager

import pytest
from unittest.mock import AsyncMock, Mock, call, patch

from app.core.exceptions import BackfillAbortedError, UpstreamUnavailableError
from app.core.retry_policy import Backoff, RetryPolicy
from app.services.indexing.embedding_backfill_service import (
    EmbeddingBackfillJob,
    document_text,
    startup_probe_policy,
)

REPOSITORY_PATH = "app.services.indexing.embedding_backfill_service.CostDocRepository"


class FakeCorpus:
    """In-memory corpus behind a mocked CostDocRepository."""

    def __init__(self, docs):
        self.docs = {doc.id: doc for doc in docs}
        self.updates = []

    def repository(self):
        repository = Mock()
        repository.get_missing_embeddings = AsyncMock(side_effect=self._missing)
        repository.update_embedding = AsyncMock(side_effect=self._update)
        repository.get_embedding_statistics = AsyncMock(side_effect=self._stats)
        return repository

    async def _missing(self, source_prefix=None, limit=None):
        docs = [
            d for _, d in sorted(self.docs.items())
            if d.embedding is None and (not source_prefix or d.source.startswith(source_prefix))
        ]
        return docs[:limit] if limit else docs

    async def _update(self, doc_id, embedding):
        self.docs[doc_id].embedding = embedding
        self.updates.append(doc_id)
        return True

    async def _stats(self, source_prefix=None):
        docs = [d for d in self.docs.values() if not source_prefix or d.source.startswith(source_prefix)]
        return {
            "total_documents": len(docs),
            "with_embeddings": sum(1 for d in docs if d.embedding is not None),
        }


@pytest.fixture
def session():
    session = Mock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def session_factory(session):
    @asynccontextmanager
    async def factory():
        yield session

    return factory


@pytest.fixture
def corpus(doc_factory):
    return FakeCorpus(
        [
            doc_factory(1, title="Epoxy", content="Epoxy pricing", source="homewyse-scraper/flooring"),
            doc_factory(2, title="Sealing", content="Sealer pricing", source="manual"),
            doc_factory(3, title="Polishing", content="Polish pricing", source="homewyse-scraper/concrete"),
            doc_factory(4, title="Done", content="Already embedded", source="manual", embedding=[0.5]),
        ]
    )


@pytest.fixture
def quick_policy():
    return RetryPolicy(max_attempts=3, delay_seconds=0, backoff=Backoff.FIXED)


def _job(session_factory, gateway, quick_policy, database_probe=None, delay_seconds=0):
    return EmbeddingBackfillJob(
        session_factory=session_factory,
        embedding_gateway=gateway,
        database_probe=database_probe or AsyncMock(return_value=True),
        probe_policy=quick_policy,
        delay_seconds=delay_seconds,
    )


@pytest.mark.asyncio
async def test_backfill_embeds_missing_documents(
    session_factory, session, corpus, mock_embedding_gateway, quick_policy
):
    with patch(REPOSITORY_PATH, side_effect=lambda _: corpus.repository()):
        report = await _job(session_factory, mock_embedding_gateway, quick_policy).run()

    assert corpus.updates == [1, 2, 3]
    assert report.candidates == 3
    assert report.succeeded == 3
    assert report.failed == 0
    assert report.total_documents == 4
    assert report.with_embeddings == 4
    assert session.commit.await_count == 3
    mock_embedding_gateway.embed.assert_any_await("Epoxy\n\nEpoxy pricing")


@pytest.mark.asyncio
async def test_backfill_continues_after_a_failure(
    session_factory, session, corpus, mock_embedding_gateway, quick_policy
):
    async def embed(text):
        if text.startswith("Sealing"):
            raise UpstreamUnavailableError("Ollama is not reachable")
        return [0.1] * 768

    mock_embedding_gateway.embed.side_effect = embed

    with patch(REPOSITORY_PATH, side_effect=lambda _: corpus.repository()):
        report = await _job(session_factory, mock_embedding_gateway, quick_policy).run()

    assert corpus.updates == [1, 3]
    assert report.succeeded == 2
    assert report.failed == 1
    assert report.failed_ids == [2]
    assert report.missing == 1
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_second_run_makes_no_updates(
    session_factory, corpus, mock_embedding_gateway, quick_policy
):
    with patch(REPOSITORY_PATH, side_effect=lambda _: corpus.repository()):
        job = _job(session_factory, mock_embedding_gateway, quick_policy)
        await job.run()
        corpus.updates.clear()
        second = await job.run()

    assert corpus.updates == []
    assert second.candidates == 0
    assert second.succeeded == 0


@pytest.mark.asyncio
async def test_source_prefix_and_limit(session_factory, corpus, mock_embedding_gateway, quick_policy):
    with patch(REPOSITORY_PATH, side_effect=lambda _: corpus.repository()):
        report = await _job(session_factory, mock_embedding_gateway, quick_policy).run(
            source_prefix="homewyse-scraper/", limit=1
        )

    assert corpus.updates == [1]
    assert report.candidates == 1
    assert report.total_documents == 2
    assert report.with_embeddings == 1


@pytest.mark.asyncio
async def test_unreachable_database_aborts(session_factory, mock_embedding_gateway, quick_policy):
    database_probe = AsyncMock(return_value=False)

    job = _job(session_factory, mock_embedding_gateway, quick_policy, database_probe=database_probe)
    with pytest.raises(BackfillAbortedError, match="Database"):
        await job.run()

    assert database_probe.await_count == 3
    mock_embedding_gateway.embed.assert_not_awaited()


@pytest.mark.asyncio
async def test_unreachable_embedding_service_aborts(session_factory, mock_embedding_gateway, quick_policy):
    mock_embedding_gateway.is_available.return_value = False

    with pytest.raises(BackfillAbortedError, match="Embedding service"):
        await _job(session_factory, mock_embedding_gateway, quick_policy).run()

    assert mock_embedding_gateway.is_available.await_count == 3


@pytest.mark.asyncio
async def test_waits_until_database_comes_up(session_factory, corpus, mock_embedding_gateway, quick_policy):
    database_probe = AsyncMock(side_effect=[False, False, True])

    with patch(REPOSITORY_PATH, side_effect=lambda _: corpus.repository()):
        report = await _job(
            session_factory, mock_embedding_gateway, quick_policy, database_probe=database_probe
        ).run()

    assert database_probe.await_count == 3
    assert report.succeeded == 3


def test_document_text_joins_title_and_content():
    assert document_text("Title", "Body") == "Title\n\nBody"
    assert document_text(None, "Body") == "\n\nBody"


def test_startup_probe_policy_defaults():
    policy = startup_probe_policy()

    assert policy.max_attempts == 30
    assert policy.backoff == Backoff.FIXED


@pytest.mark.asyncio
async def test_delay_between_documents_but_not_after_last(
    session_factory, corpus, mock_embedding_gateway, quick_policy
):
    sleep = AsyncMock()

    with patch(REPOSITORY_PATH, side_effect=lambda _: corpus.repository()), patch(
        "app.services.indexing.embedding_backfill_service.asyncio.sleep", new=sleep
    ):
        report = await _job(
            session_factory, mock_embedding_gateway, quick_policy, delay_seconds=1.0
        ).run()

    assert report.succeeded == 3
    assert sleep.await_args_list == [call(1.0), call(1.0)]
