from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

SELF_TEST_PROMPT = "Are you working? Just reply with the word 'WORKING'."


class LLMPurpose(str, Enum):
    enhancement = "enhancement"
    simplified_enhancement = "simplified_enhancement"
    self_test = "self_test"


@dataclass
class LLMRequest:
    purpose: LLMPurpose
    prompt: str
    timeout_seconds: int = 30
    temperature: float = 0.7
    max_tokens: int = 4000
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelAttemptTrace:
    purpose: str
    backend: str
    model: str
    latency_ms: int
    status: str
    retry_count: int
    error_class: Optional[str] = None
    error_message: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None


@dataclass
class LLMResponse:
    text: str
    backend: str
    model: str
    attempts: List[ModelAttemptTrace] = field(default_factory=list)


class GenerativeBackend(Protocol):
    """Capability shared by every interchangeable generative backend."""

    name: str

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        timeout_seconds: int,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> str: ...

    def self_test(self, *, model: str) -> bool: ...


class LLMOrchestrationError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        attempts: Optional[List[ModelAttemptTrace]] = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts or []


class BackendUnavailableError(LLMOrchestrationError):
    """No configured backend could be initialized."""


class LLMProviderError(RuntimeError):
    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


def classify_retryable_error(exc: Exception) -> bool:
    text = str(exc).lower()
    if "rate limit" in text or "429" in text:
        return True
    if "timeout" in text or "timed out" in text:
        return True
    if "connection reset" in text or "connection aborted" in text:
        return True
    if "502" in text or "503" in text or "504" in text:
        return True
    return False


def probe_backend(backend: GenerativeBackend, model: str, timeout_seconds: int = 20) -> bool:
    """Send a tiny prompt; any non-empty answer counts as a working backend."""
    try:
        text = backend.generate(
            model=model,
            prompt=SELF_TEST_PROMPT,
            timeout_seconds=timeout_seconds,
            temperature=0.1,
            max_tokens=10,
        )
    except LLMProviderError as exc:
        # A rate-limited backend is reachable and authenticated
        return "429" in str(exc) or "rate limit" in str(exc).lower()
    return bool(str(text or "").strip())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
