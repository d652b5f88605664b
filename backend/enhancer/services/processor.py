"""Sequential per-document pipeline: discover, enhance, normalize, persist."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
from loguru import logger

from enhancer.config import Settings, get_settings
from enhancer.models.documents import BatchReport, ProcessResult, SourceDocument
from enhancer.services.crawler import ContentExtractor
from enhancer.services.enhancement import ArticleEnhancer
from enhancer.services.formatter import ContentFormatter
from enhancer.services.llm.orchestrator import LLMOrchestrator
from enhancer.services.logger import configure_logging, log_event
from enhancer.services.retrieval.search_connectors import CompetitorDiscovery
from enhancer.services.storage import ArticleStore, HttpArticleStore


class ArticleProcessor:
    def __init__(
        self,
        store: ArticleStore,
        discovery: CompetitorDiscovery,
        enhancer: ArticleEnhancer,
        formatter: ContentFormatter,
        settings: Optional[Settings] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.discovery = discovery
        self.enhancer = enhancer
        self.formatter = formatter
        self.settings = settings or get_settings()
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        """Log progress, and forward it to the callback if set."""
        logger.info(message)
        if self.progress_callback:
            self.progress_callback(message)

    async def process_one(self, document_id: str) -> ProcessResult:
        """Fetch one stored document and run it through the pipeline."""
        try:
            document = await self.store.fetch_document(document_id)
        except Exception as exc:
            logger.error(f"Error fetching article {document_id}: {exc}")
            return ProcessResult(document_id=str(document_id), success=False, error=str(exc))
        return await self.process_document(document)

    async def process_document(self, document: SourceDocument) -> ProcessResult:
        """Never raises; every failure becomes an unsuccessful ProcessResult."""
        self._log(f"Processing article: {document.title} ({document.id})")
        try:
            candidates = await self.discovery.discover(document.title)
            if not candidates:
                logger.warning("No competitor articles found")

            result = await self.enhancer.enhance(document, candidates)
            if not result.success:
                raise RuntimeError(f"Enhancement failed: {result.error or 'no content generated'}")

            normalized = self.formatter.normalize(result.body, result.references)
            await self.store.persist_enhancement(
                document.id,
                normalized,
                normalized.references,
                model=result.model or result.backend_id,
            )
        except Exception as exc:
            logger.error(f"Error processing article {document.id}: {exc}")
            return ProcessResult(
                document_id=document.id,
                success=False,
                title=document.title,
                original_length=len(document.body),
                error=str(exc),
            )

        self._log(f"Article {document.id} processed successfully")
        return ProcessResult(
            document_id=document.id,
            success=True,
            title=document.title,
            backend_id=result.backend_id,
            model=result.model,
            references_count=len(normalized.references),
            original_length=len(document.body),
            enhanced_length=len(normalized.text),
        )

    async def process_batch(self, limit: Optional[int] = None) -> BatchReport:
        """Process pending documents one at a time; partial failure never stops the batch."""
        limit = int(limit if limit is not None else self.settings.max_articles_to_process)
        report = BatchReport(started_at=datetime.now(timezone.utc))

        try:
            documents = await self.store.fetch_pending_documents(limit)
        except Exception as exc:
            logger.error(f"Fatal error fetching pending articles: {exc}")
            report.error = str(exc)
            report.finished_at = datetime.now(timezone.utc)
            return report

        for index, document in enumerate(documents):
            report.per_document.append(await self.process_document(document))
            if index < len(documents) - 1 and self.settings.document_delay_seconds > 0:
                logger.debug(f"Waiting {self.settings.document_delay_seconds}s before next article...")
                await asyncio.sleep(float(self.settings.document_delay_seconds))

        report.finished_at = datetime.now(timezone.utc)
        self.log_report(report)
        return report

    def log_report(self, report: BatchReport) -> None:
        counts = report.counts
        log_event(
            "batch_complete",
            "Batch processing finished",
            processed=counts["processed"],
            succeeded=counts["succeeded"],
            failed=counts["failed"],
            success_rate=f"{report.success_rate * 100:.2f}%",
            duration_seconds=round(report.duration_seconds, 2),
        )
        for result in report.per_document:
            if result.success:
                logger.info(f"  OK   {result.title} ({result.references_count} references)")
            else:
                logger.warning(f"  FAIL {result.title or result.document_id}: {result.error}")


def build_processor(client: httpx.AsyncClient, settings: Optional[Settings] = None) -> ArticleProcessor:
    """Wire the default collaborators around one shared HTTP client."""
    settings = settings or get_settings()
    configure_logging(settings)
    return ArticleProcessor(
        store=HttpArticleStore(client, settings),
        discovery=CompetitorDiscovery(client, settings),
        enhancer=ArticleEnhancer(ContentExtractor(client, settings), LLMOrchestrator(settings), settings),
        formatter=ContentFormatter(settings),
        settings=settings,
    )
