"""
Tests for the summary dispatcher: cache gate, generation matching and discard rules.
"""

import asyncio

import pytest

from speedy_reader.exceptions import SummarizationError
from speedy_reader.summarizer import Summarizer
from speedy_reader.tasks import CompletionOutcome, SubmitStatus, SummaryDispatcher

from .conftest import MockProvider


@pytest.fixture
def dispatcher(test_db, summarizer):
    return SummaryDispatcher(test_db, summarizer)


class TestSubmit:
    @pytest.mark.asyncio
    async def test_no_backend_rejects_without_job(self, test_db, add_article):
        article = test_db.articles.get(add_article("a"))
        dispatcher = SummaryDispatcher(test_db, None)

        result = dispatcher.submit(article)

        assert result.status is SubmitStatus.NO_API_KEY
        assert dispatcher.pending_article_id is None
        assert test_db.articles.get(article.id).is_read is False

    @pytest.mark.asyncio
    async def test_cached_summary_never_calls_backend(self, test_db, add_article, dispatcher, mock_provider):
        article = test_db.articles.get(add_article("a"))
        test_db.save_summary(article.id, "Cached text", "old-model")

        result = dispatcher.submit(article)
        await dispatcher.wait_for_jobs()

        assert result.status is SubmitStatus.CACHED
        assert result.summary.content == "Cached text"
        assert mock_provider.calls == []
        assert dispatcher.pending_article_id is None

    @pytest.mark.asyncio
    async def test_submit_marks_read_and_records_pending(self, test_db, add_article, dispatcher):
        article = test_db.articles.get(add_article("a"))

        result = dispatcher.submit(article)

        assert result.status is SubmitStatus.SUBMITTED
        assert dispatcher.pending_article_id == article.id
        assert test_db.articles.get(article.id).is_read is True
        await dispatcher.wait_for_jobs()

    @pytest.mark.asyncio
    async def test_bypassing_cache_regenerates(self, test_db, add_article, dispatcher, mock_provider, summary_count):
        article = test_db.articles.get(add_article("a"))
        test_db.save_summary(article.id, "Old", "old-model")

        assert dispatcher.submit(article, use_cache=False).status is SubmitStatus.SUBMITTED
        await dispatcher.wait_for_jobs()
        completion = dispatcher.drain({article.id})

        assert completion.outcome is CompletionOutcome.APPLIED
        assert test_db.get_summary(article.id).content == "A short summary."
        assert summary_count(article.id) == 1
        assert len(mock_provider.calls) == 1


class TestDrain:
    @pytest.mark.asyncio
    async def test_empty_queue(self, dispatcher):
        assert dispatcher.drain(set()) is None

    @pytest.mark.asyncio
    async def test_success_is_persisted(self, test_db, add_article, dispatcher):
        article = test_db.articles.get(add_article("a"))
        dispatcher.submit(article)
        await dispatcher.wait_for_jobs()

        completion = dispatcher.drain({article.id})

        assert completion.outcome is CompletionOutcome.APPLIED
        assert completion.summary.content == "A short summary."
        assert completion.summary.model_version == "mock-model"
        assert test_db.get_summary(article.id).content == "A short summary."
        assert dispatcher.pending_article_id is None

    @pytest.mark.asyncio
    async def test_failure_is_not_persisted(self, test_db, add_article):
        provider = MockProvider(error=SummarizationError("Claude API error (500): boom"))
        dispatcher = SummaryDispatcher(test_db, Summarizer(provider))
        article = test_db.articles.get(add_article("a"))
        dispatcher.submit(article)
        await dispatcher.wait_for_jobs()

        completion = dispatcher.drain({article.id})

        assert completion.outcome is CompletionOutcome.FAILED
        assert "boom" in completion.error
        assert test_db.get_summary(article.id) is None
        # Read flag stays set after a failure
        assert test_db.articles.get(article.id).is_read is True
        assert dispatcher.pending_article_id is None

    @pytest.mark.asyncio
    async def test_superseded_job_is_discarded(self, test_db, add_article, dispatcher):
        first = test_db.articles.get(add_article("a"))
        second = test_db.articles.get(add_article("b"))

        dispatcher.submit(first)
        dispatcher.submit(second)
        await dispatcher.wait_for_jobs()

        outcomes = [dispatcher.drain({first.id, second.id}) for _ in range(2)]

        assert outcomes[0].outcome is CompletionOutcome.STALE
        assert outcomes[0].article_id == first.id
        assert outcomes[1].outcome is CompletionOutcome.APPLIED
        assert outcomes[1].article_id == second.id
        assert test_db.get_summary(first.id) is None

    @pytest.mark.asyncio
    async def test_regenerate_same_article_accepts_only_latest(self, test_db, add_article, mock_provider, summary_count):
        dispatcher = SummaryDispatcher(test_db, Summarizer(mock_provider))
        article = test_db.articles.get(add_article("a"))

        dispatcher.submit(article, use_cache=False)
        dispatcher.submit(article, use_cache=False)
        await dispatcher.wait_for_jobs()

        first = dispatcher.drain({article.id})
        second = dispatcher.drain({article.id})

        assert first.outcome is CompletionOutcome.STALE
        assert second.outcome is CompletionOutcome.APPLIED
        assert summary_count(article.id) == 1

    @pytest.mark.asyncio
    async def test_orphaned_job_is_discarded(self, test_db, add_article, dispatcher):
        article = test_db.articles.get(add_article("a"))
        dispatcher.submit(article)
        test_db.delete_article(article.id)
        await dispatcher.wait_for_jobs()

        completion = dispatcher.drain(set())

        assert completion.outcome is CompletionOutcome.ORPHANED
        assert test_db.get_summary(article.id) is None
        assert dispatcher.pending_article_id is None

    @pytest.mark.asyncio
    async def test_one_completion_per_drain(self, test_db, add_article, dispatcher):
        first = test_db.articles.get(add_article("a"))
        second = test_db.articles.get(add_article("b"))
        dispatcher.submit(first)
        dispatcher.submit(second)
        await dispatcher.wait_for_jobs()

        dispatcher.drain({first.id, second.id})
        assert dispatcher.drain({first.id, second.id}) is not None
        assert dispatcher.drain({first.id, second.id}) is None


class TestShutdown:
    @pytest.mark.asyncio
    async def test_cancels_running_jobs(self, test_db, add_article, mock_provider, dispatcher):
        mock_provider.release = asyncio.Event()
        article = test_db.articles.get(add_article("a"))
        dispatcher.submit(article)
        await asyncio.sleep(0)

        await dispatcher.shutdown()

        assert dispatcher.pending_article_id is None
        assert dispatcher.drain({article.id}) is None
        assert mock_provider.calls == []
