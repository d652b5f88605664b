"""Client for the article storage service."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from loguru import logger

from enhancer.config import Settings, get_settings
from enhancer.models.documents import SourceDocument
from enhancer.services.formatter import NormalizedDocument


class StorageError(RuntimeError):
    pass


class ArticleStore(Protocol):
    async def fetch_pending_documents(self, limit: int) -> List[SourceDocument]: ...

    async def fetch_document(self, document_id: str) -> SourceDocument: ...

    async def persist_enhancement(
        self,
        document_id: str,
        normalized: NormalizedDocument,
        references: Sequence[str],
        model: Optional[str] = None,
    ) -> None: ...


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def document_from_payload(payload: Dict[str, Any]) -> SourceDocument:
    document_id = payload.get("_id") or payload.get("id")
    if not document_id:
        raise StorageError("Article payload has no id")
    return SourceDocument(
        id=str(document_id),
        title=str(payload.get("title") or "").strip(),
        body=str(payload.get("originalContent") or ""),
        url=str(payload.get("originalUrl") or ""),
        published_at=_parse_datetime(payload.get("publishedDate")),
    )


class HttpArticleStore:
    """ArticleStore over the storage service's JSON REST API."""

    def __init__(self, client: httpx.AsyncClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()
        self.base_url = str(self.settings.storage_api_url).rstrip("/")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.request(
                method,
                url,
                timeout=float(self.settings.storage_timeout_seconds),
                **kwargs,
            )
            resp.raise_for_status()
            envelope = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise StorageError(f"{method} {path} failed: {exc}") from exc

        if not isinstance(envelope, dict) or not envelope.get("success"):
            message = envelope.get("message") if isinstance(envelope, dict) else None
            raise StorageError(f"{method} {path} was rejected: {message or 'unsuccessful response'}")
        return envelope.get("data")

    async def fetch_pending_documents(self, limit: int) -> List[SourceDocument]:
        data = await self._request(
            "GET",
            "/articles",
            params={
                "source": "original",
                "isUpdated": "false",
                "limit": int(limit),
                "sort": "-createdAt",
            },
        )
        documents = [document_from_payload(item) for item in data or [] if isinstance(item, dict)]
        if documents:
            logger.info(f"Found {len(documents)} articles to process")
        else:
            logger.warning("No articles found for processing")
        return documents

    async def fetch_document(self, document_id: str) -> SourceDocument:
        data = await self._request("GET", f"/articles/{document_id}")
        if not isinstance(data, dict):
            raise StorageError(f"Article {document_id} not found")
        return document_from_payload(data)

    async def persist_enhancement(
        self,
        document_id: str,
        normalized: NormalizedDocument,
        references: Sequence[str],
        model: Optional[str] = None,
    ) -> None:
        payload = {
            "updatedContent": normalized.text,
            "contentTree": normalized.as_dict()["nodes"],
            "references": list(references),
            "isUpdated": True,
            "source": "ai-updated",
            "aiModel": model,
            "enhancedAt": datetime.now(timezone.utc).isoformat(),
        }
        await self._request("PUT", f"/articles/{document_id}", json=payload)
        logger.info(f"Article {document_id} updated")

    async def check_connection(self) -> bool:
        """True when the service health endpoint answers OK."""
        try:
            resp = await self.client.get(f"{self.base_url}/health", timeout=float(self.settings.storage_timeout_seconds))
            resp.raise_for_status()
            return str(resp.json().get("status", "")).upper() == "OK"
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.error(f"Cannot connect to storage service: {exc}")
            return False
