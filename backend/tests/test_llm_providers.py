import httpx
import pytest

from enhancer.config import Settings
from enhancer.services.llm.providers import ollama_provider
from enhancer.services.llm.providers.anthropic_provider import AnthropicProvider
from enhancer.services.llm.providers.gemini_provider import GeminiProvider
from enhancer.services.llm.providers.ollama_provider import OllamaProvider
from enhancer.services.llm.providers.openai_provider import OpenAIProvider
from enhancer.services.llm.providers.openrouter_provider import OpenRouterProvider
from enhancer.services.llm.types import LLMProviderError


@pytest.mark.parametrize(
    "provider_cls, key_name",
    [
        (GeminiProvider, "GEMINI_API_KEY"),
        (OpenRouterProvider, "OPENROUTER_API_KEY"),
        (OpenAIProvider, "OPENAI_API_KEY"),
        (AnthropicProvider, "ANTHROPIC_API_KEY"),
    ],
)
def test_missing_credentials_are_not_retryable(provider_cls, key_name):
    settings = Settings(gemini_api_key="", openrouter_api_key="", openai_api_key="", anthropic_api_key="")

    with pytest.raises(LLMProviderError) as exc_info:
        provider_cls(settings)

    assert exc_info.value.retryable is False
    assert key_name in str(exc_info.value)


def _patch_ollama_client(monkeypatch, handler):
    real_client = httpx.Client

    def _client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(ollama_provider.httpx, "Client", _client)


def test_ollama_generate_posts_non_streaming_chat(monkeypatch):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = request.read()
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "  # Enhanced  "}})

    _patch_ollama_client(monkeypatch, handler)
    provider = OllamaProvider(Settings(ollama_base_url="http://ollama.test:11434/"))

    text = provider.generate(model="llama2", prompt="Enhance", timeout_seconds=5)

    assert text == "# Enhanced"
    assert captured["url"] == "http://ollama.test:11434/api/chat"
    assert b'"stream":false' in captured["body"].replace(b" ", b"")


def test_ollama_self_test_requires_pulled_model(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "mistral:latest"}]})
        return httpx.Response(200, json={"message": {"content": "WORKING"}})

    _patch_ollama_client(monkeypatch, handler)
    provider = OllamaProvider(Settings(ollama_base_url="http://ollama.test:11434"))

    assert provider.self_test(model="llama2") is False
    assert provider.self_test(model="mistral") is True


def test_ollama_transport_errors_are_retryable(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    _patch_ollama_client(monkeypatch, handler)
    provider = OllamaProvider(Settings(ollama_base_url="http://ollama.test:11434"))

    with pytest.raises(LLMProviderError) as exc_info:
        provider.generate(model="llama2", prompt="Enhance", timeout_seconds=5)

    assert exc_info.value.retryable is True
