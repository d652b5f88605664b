from __future__ import annotations

from typing import Optional

from enhancer.config import Settings, get_settings
from enhancer.services.llm.types import LLMProviderError, probe_backend

try:
    from google import genai
    from google.genai import types
except Exception:  # pragma: no cover - import guard
    genai = None
    types = None


class GeminiProvider:
    name = "gemini"

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        if not settings.gemini_api_key:
            raise LLMProviderError("GEMINI_API_KEY not configured", retryable=False)
        if genai is None:
            raise LLMProviderError("google-genai SDK unavailable", retryable=False)
        self._client = genai.Client(api_key=settings.gemini_api_key)

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        timeout_seconds: int,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> str:
        try:
            cfg = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                http_options=types.HttpOptions(timeout=int(timeout_seconds) * 1000),
            )
            response = self._client.models.generate_content(
                model=model,
                contents=prompt,
                config=cfg,
            )
            return str(response.text or "").strip()
        except Exception as exc:
            raise LLMProviderError(str(exc), retryable=True) from exc

    def self_test(self, *, model: str) -> bool:
        return probe_backend(self, model)
