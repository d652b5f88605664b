import pytest

from enhancer.config import Settings
from enhancer.models.documents import EnhancementResult, SourceDocument
from enhancer.services.crawler import CandidateReference
from enhancer.services.formatter import ContentFormatter, FixedBreakPolicy
from enhancer.services.llm.types import BackendUnavailableError
from enhancer.services.processor import ArticleProcessor
from enhancer.services.storage import StorageError


class _FakeStore:
    def __init__(self, documents, fail_pending=False):
        self.documents = {d.id: d for d in documents}
        self.fail_pending = fail_pending
        self.persisted = {}

    async def fetch_pending_documents(self, limit):
        if self.fail_pending:
            raise StorageError("GET /articles failed: connection refused")
        return list(self.documents.values())[:limit]

    async def fetch_document(self, document_id):
        if document_id not in self.documents:
            raise StorageError(f"Article {document_id} not found")
        return self.documents[document_id]

    async def persist_enhancement(self, document_id, normalized, references, model=None):
        self.persisted[document_id] = (normalized, list(references), model)


class _FakeDiscovery:
    async def discover(self, title):
        return [CandidateReference(url=f"https://ref.test/{title.lower()}", title=title, rank=1)]


class _FakeEnhancer:
    def __init__(self, failing=None, unavailable=None):
        self.failing = set(failing or [])
        self.unavailable = set(unavailable or [])

    async def enhance(self, document, candidates):
        if document.id in self.unavailable:
            raise BackendUnavailableError("No generative backend could be initialized")
        if document.id in self.failing:
            return EnhancementResult(success=False, error="Backend returned empty content")
        return EnhancementResult(
            body=f"# {document.title}\n\nEnhanced body for {document.title}.",
            references=[c.url for c in candidates],
            backend_id="gemini",
            model="gemini-2.5-flash",
            success=True,
        )


def _documents(n):
    return [SourceDocument(id=f"d{i}", title=f"Doc{i}", body="original " * 10) for i in range(n)]


def _processor(store, enhancer):
    settings = Settings(document_delay_seconds=0, max_articles_to_process=10)
    return ArticleProcessor(
        store=store,
        discovery=_FakeDiscovery(),
        enhancer=enhancer,
        formatter=ContentFormatter(settings, policy=FixedBreakPolicy(3)),
        settings=settings,
    )


@pytest.mark.asyncio
async def test_batch_continues_past_a_failing_document():
    store = _FakeStore(_documents(4))
    processor = _processor(store, _FakeEnhancer(failing={"d2"}))

    report = await processor.process_batch()

    assert len(report.per_document) == 4
    assert report.counts == {"processed": 4, "succeeded": 3, "failed": 1}
    failed = [r for r in report.per_document if not r.success]
    assert [r.document_id for r in failed] == ["d2"]
    assert "Backend returned empty content" in failed[0].error
    assert set(store.persisted) == {"d0", "d1", "d3"}
    assert report.success_rate == 0.75
    assert report.as_dict()["counts"]["succeeded"] == 3


@pytest.mark.asyncio
async def test_backend_unavailable_fails_only_that_document():
    store = _FakeStore(_documents(3))
    processor = _processor(store, _FakeEnhancer(unavailable={"d0"}))

    report = await processor.process_batch()

    assert [r.success for r in report.per_document] == [False, True, True]
    assert "No generative backend" in report.per_document[0].error


@pytest.mark.asyncio
async def test_pending_fetch_failure_yields_empty_report_with_error():
    processor = _processor(_FakeStore([], fail_pending=True), _FakeEnhancer())

    report = await processor.process_batch()

    assert report.per_document == []
    assert report.counts == {"processed": 0, "succeeded": 0, "failed": 0}
    assert "connection refused" in report.error
    assert report.finished_at is not None


@pytest.mark.asyncio
async def test_process_one_normalizes_and_persists():
    store = _FakeStore(_documents(1))
    processor = _processor(store, _FakeEnhancer())

    result = await processor.process_one("d0")

    assert result.success is True
    assert result.model == "gemini-2.5-flash"
    assert result.references_count == 1
    normalized, references, model = store.persisted["d0"]
    assert normalized.title == "Doc0"
    assert normalized.text == "# Doc0\n\nEnhanced body for Doc0."
    assert references == ["https://ref.test/doc0"]
    assert model == "gemini-2.5-flash"


@pytest.mark.asyncio
async def test_process_one_reports_missing_document():
    result = await _processor(_FakeStore([]), _FakeEnhancer()).process_one("missing")

    assert result.success is False
    assert result.document_id == "missing"
    assert "not found" in result.error
