import json

import httpx
import pytest

from enhancer.config import Settings
from enhancer.services.formatter import ContentFormatter, FixedBreakPolicy
from enhancer.services.storage import HttpArticleStore, StorageError

API = "http://storage.test/api"


def _store(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpArticleStore(client, Settings(storage_api_url=API)), client


@pytest.mark.asyncio
async def test_fetch_pending_documents_maps_payloads():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": [
                    {
                        "_id": "abc",
                        "title": " Chatbots 101 ",
                        "originalContent": "Body",
                        "originalUrl": "https://beyondchats.com/blogs/chatbots-101",
                        "publishedDate": "2024-05-01T10:00:00Z",
                    }
                ],
            },
        )

    store, client = _store(handler)
    async with client:
        documents = await store.fetch_pending_documents(5)

    assert captured["path"] == "/api/articles"
    assert captured["params"] == {"source": "original", "isUpdated": "false", "limit": "5", "sort": "-createdAt"}
    assert len(documents) == 1
    assert documents[0].id == "abc"
    assert documents[0].title == "Chatbots 101"
    assert documents[0].published_at.year == 2024


@pytest.mark.asyncio
async def test_persist_enhancement_sends_text_tree_and_references():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"_id": "abc"}})

    normalized = ContentFormatter(Settings(), policy=FixedBreakPolicy(3)).normalize("# Title\n\nBody text.")
    store, client = _store(handler)
    async with client:
        await store.persist_enhancement("abc", normalized, ["https://ref.test"], model="gemini-2.5-flash")

    body = captured["body"]
    assert captured["method"] == "PUT"
    assert captured["path"] == "/api/articles/abc"
    assert body["updatedContent"] == "# Title\n\nBody text."
    assert body["contentTree"][0] == {"type": "heading", "level": 1, "text": "Title"}
    assert body["references"] == ["https://ref.test"]
    assert body["isUpdated"] is True
    assert body["source"] == "ai-updated"
    assert body["aiModel"] == "gemini-2.5-flash"


@pytest.mark.asyncio
async def test_unsuccessful_envelope_raises_storage_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "Article not found"})

    store, client = _store(handler)
    async with client:
        with pytest.raises(StorageError) as exc_info:
            await store.fetch_document("nope")

    assert "Article not found" in str(exc_info.value)


@pytest.mark.asyncio
async def test_transport_errors_raise_storage_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    store, client = _store(handler)
    async with client:
        with pytest.raises(StorageError):
            await store.fetch_pending_documents(5)
        assert await store.check_connection() is False
