from __future__ import annotations

from typing import Optional

import httpx

from enhancer.config import Settings, get_settings
from enhancer.services.llm.types import LLMProviderError, probe_backend

SYSTEM_PROMPT = (
    "You are a professional content writer and SEO expert. Your task is to enhance articles "
    "while maintaining their original meaning and improving readability, structure, and SEO."
)


class OllamaProvider:
    """Local Ollama server; needs no credential, only a reachable base URL."""

    name = "ollama"

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        base_url = str(settings.ollama_base_url or "").strip().rstrip("/")
        if not base_url:
            raise LLMProviderError("OLLAMA_BASE_URL not configured", retryable=False)
        self._base_url = base_url

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        timeout_seconds: int,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> str:
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "options": {"temperature": temperature, "num_predict": max_tokens},
            "stream": False,
        }
        try:
            with httpx.Client(timeout=timeout_seconds) as client:
                resp = client.post(f"{self._base_url}/api/chat", json=payload)
                resp.raise_for_status()
                data = resp.json()
        except Exception as exc:
            raise LLMProviderError(str(exc), retryable=True) from exc
        message = data.get("message") if isinstance(data, dict) else None
        return str((message or {}).get("content") or "").strip()

    def model_available(self, model: str) -> bool:
        try:
            with httpx.Client(timeout=10) as client:
                resp = client.get(f"{self._base_url}/api/tags")
                resp.raise_for_status()
                data = resp.json()
        except Exception:
            return False
        names = [str(item.get("name") or "") for item in data.get("models", []) if isinstance(item, dict)]
        return any(model in name for name in names)

    def self_test(self, *, model: str) -> bool:
        if not self.model_available(model):
            return False
        return probe_backend(self, model)
