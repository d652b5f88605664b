from __future__ import annotations

import time
from typing import Dict, List, Optional, Tuple

from loguru import logger

from enhancer.config import Settings, get_settings
from enhancer.services.llm.providers.anthropic_provider import AnthropicProvider
from enhancer.services.llm.providers.gemini_provider import GeminiProvider
from enhancer.services.llm.providers.ollama_provider import OllamaProvider
from enhancer.services.llm.providers.openai_provider import OpenAIProvider
from enhancer.services.llm.providers.openrouter_provider import OpenRouterProvider
from enhancer.services.llm.types import (
    BackendUnavailableError,
    GenerativeBackend,
    LLMOrchestrationError,
    LLMProviderError,
    LLMRequest,
    LLMResponse,
    ModelAttemptTrace,
    classify_retryable_error,
    now_iso,
)
from enhancer.services.logger import log_llm_call

PROVIDER_FACTORIES = {
    "gemini": GeminiProvider,
    "openrouter": OpenRouterProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "ollama": OllamaProvider,
}


class LLMOrchestrator:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._providers: Dict[str, GenerativeBackend] = {}

    def _provider(self, name: str) -> GenerativeBackend:
        key = str(name or "").strip().lower()
        if key in self._providers:
            return self._providers[key]
        factory = PROVIDER_FACTORIES.get(key)
        if factory is None:
            raise LLMProviderError(f"Unsupported LLM provider: {name}", retryable=False)
        instance = factory(self._settings)
        self._providers[key] = instance
        return instance

    def _routes(self) -> List[Tuple[str, str]]:
        routes = self._settings.backend_routes()
        return routes if routes else [("openrouter", self._settings.openrouter_model)]

    def available_routes(self) -> List[Tuple[str, str]]:
        """Routes whose backend initializes; raises when there are none."""
        usable: List[Tuple[str, str]] = []
        reasons: List[str] = []
        for backend, model in self._routes():
            try:
                self._provider(backend)
            except LLMProviderError as exc:
                logger.warning(f"Skipping backend {backend}: {exc}")
                reasons.append(f"{backend}: {exc}")
                continue
            usable.append((backend, model))
        if not usable:
            raise BackendUnavailableError(
                "No generative backend could be initialized (" + "; ".join(reasons) + ")"
            )
        return usable

    def generate(self, request: LLMRequest) -> LLMResponse:
        attempts: List[ModelAttemptTrace] = []
        routes = self.available_routes()
        max_attempts = max(1, int(self._settings.llm_retry_max_attempts))
        backoff = max(0.0, float(self._settings.llm_retry_backoff_seconds))

        for backend_name, model in routes:
            retry_count = 0
            while retry_count < max_attempts:
                started = now_iso()
                t0 = time.perf_counter()
                try:
                    provider = self._provider(backend_name)
                    text = provider.generate(
                        model=model,
                        prompt=request.prompt,
                        timeout_seconds=max(1, int(request.timeout_seconds)),
                        temperature=request.temperature,
                        max_tokens=request.max_tokens,
                    )
                    latency_ms = int((time.perf_counter() - t0) * 1000)
                    attempts.append(
                        ModelAttemptTrace(
                            purpose=request.purpose.value,
                            backend=backend_name,
                            model=model,
                            latency_ms=latency_ms,
                            status="success",
                            retry_count=retry_count,
                            started_at=started,
                            ended_at=now_iso(),
                        )
                    )
                    log_llm_call(backend_name, model, request.purpose.value, latency_ms, "success", retry_count)
                    return LLMResponse(
                        text=text,
                        backend=backend_name,
                        model=model,
                        attempts=attempts,
                    )
                except Exception as exc:
                    latency_ms = int((time.perf_counter() - t0) * 1000)
                    retryable = False
                    if isinstance(exc, LLMProviderError):
                        retryable = bool(exc.retryable)
                    if not retryable:
                        retryable = classify_retryable_error(exc)
                    status = "retryable_error" if retryable else "terminal_error"
                    attempts.append(
                        ModelAttemptTrace(
                            purpose=request.purpose.value,
                            backend=backend_name,
                            model=model,
                            latency_ms=latency_ms,
                            status=status,
                            retry_count=retry_count,
                            error_class=exc.__class__.__name__,
                            error_message=str(exc)[:500],
                            started_at=started,
                            ended_at=now_iso(),
                        )
                    )
                    log_llm_call(
                        backend_name, model, request.purpose.value, latency_ms, status, retry_count, str(exc)[:200]
                    )
                    if retryable and retry_count < max_attempts - 1:
                        if backoff > 0:
                            time.sleep(backoff * (retry_count + 1))
                        retry_count += 1
                        continue
                    break

        raise LLMOrchestrationError(
            f"All backend routes failed for purpose={request.purpose.value}",
            attempts=attempts,
        )

    def check_backends(self) -> Dict[str, bool]:
        """Run the self-test of every configured route."""
        results: Dict[str, bool] = {}
        for backend_name, model in self._routes():
            try:
                results[backend_name] = bool(self._provider(backend_name).self_test(model=model))
            except Exception as exc:
                logger.warning(f"Self-test for {backend_name} failed: {exc}")
                results[backend_name] = False
            logger.info(f"{backend_name}: {'OK' if results[backend_name] else 'FAILED'}")
        return results
