"""Competitor-informed article enhancement."""
from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

from loguru import logger

from enhancer.config import Settings, get_settings
from enhancer.models.documents import EnhancementResult, SourceDocument
from enhancer.services.crawler import CandidateReference, ContentExtractor
from enhancer.services.llm.orchestrator import LLMOrchestrator
from enhancer.services.llm.types import (
    BackendUnavailableError,
    LLMOrchestrationError,
    LLMPurpose,
    LLMRequest,
    LLMResponse,
)
from enhancer.services.prompts import (
    CompetitorSummary,
    build_enhancement_prompt,
    build_simplified_prompt,
)
from enhancer.services.references import merge_references, split_references


class ArticleEnhancer:
    """Rewrites one source document using extracted competitor articles as guidance."""

    def __init__(
        self,
        extractor: ContentExtractor,
        orchestrator: LLMOrchestrator,
        settings: Optional[Settings] = None,
    ):
        self.extractor = extractor
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()

    async def gather_competitors(self, candidates: Sequence[CandidateReference]) -> List[CompetitorSummary]:
        """Extracted competitors, or URL-only placeholders when every extraction failed."""
        title_chars = int(self.settings.competitor_title_chars)
        urls = [candidate.url for candidate in candidates]
        extracted = await self.extractor.extract_many(urls) if urls else []
        if extracted:
            return [CompetitorSummary.from_extracted(item, title_chars) for item in extracted]
        if candidates:
            logger.info(f"Using {len(candidates)} placeholder competitors built from search results")
        return [CompetitorSummary.placeholder_for(candidate, title_chars) for candidate in candidates]

    async def _generate(self, purpose: LLMPurpose, prompt: str, temperature: float, max_tokens: int) -> LLMResponse:
        request = LLMRequest(
            purpose=purpose,
            prompt=prompt,
            timeout_seconds=int(self.settings.llm_timeout_seconds),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return await asyncio.to_thread(self.orchestrator.generate, request)

    async def enhance(
        self,
        document: SourceDocument,
        candidates: Sequence[CandidateReference],
    ) -> EnhancementResult:
        """
        Produce an enhanced body and reference list for ``document``.

        Raises BackendUnavailableError when no generative backend can be
        initialized. Every other failure is reported through ``success=False``.
        """
        settings = self.settings
        # Fail fast before spending requests on competitor pages
        self.orchestrator.available_routes()

        competitors = await self.gather_competitors(candidates)
        prompt = build_enhancement_prompt(document, competitors, int(settings.original_excerpt_chars))

        try:
            response = await self._generate(
                LLMPurpose.enhancement,
                prompt,
                float(settings.llm_temperature),
                int(settings.llm_max_tokens),
            )
            if not response.text.strip():
                logger.warning("Backend returned empty content, retrying with a simplified prompt")
                response = await self._generate(
                    LLMPurpose.simplified_enhancement,
                    build_simplified_prompt(document, competitors, int(settings.simplified_excerpt_chars)),
                    float(settings.llm_simplified_temperature),
                    int(settings.llm_simplified_max_tokens),
                )
        except BackendUnavailableError:
            raise
        except LLMOrchestrationError as exc:
            logger.error(f"Enhancement failed for '{document.title}': {exc}")
            return EnhancementResult(success=False, error=str(exc))

        if not response.text.strip():
            return EnhancementResult(
                backend_id=response.backend,
                model=response.model,
                success=False,
                error="Backend returned empty content",
            )

        body, parsed_urls = split_references(response.text)
        references = merge_references(
            parsed_urls,
            [competitor.url for competitor in competitors],
            int(settings.references_cap),
        )
        logger.info(
            f"Enhanced '{document.title}' with {response.backend}/{response.model}: "
            f"{len(body)} chars, {len(references)} references"
        )
        return EnhancementResult(
            body=body,
            references=references,
            backend_id=response.backend,
            model=response.model,
            success=bool(body.strip()),
            error=None if body.strip() else "Enhanced body is empty after removing references",
        )
