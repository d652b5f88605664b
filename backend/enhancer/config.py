from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Tuple


class Settings(BaseSettings):
    # Generative backends
    ai_backend: str = "openrouter"  # gemini | openrouter | openai | anthropic | ollama
    ai_fallback_backends: str = "gemini,openrouter"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    openrouter_api_key: str = ""
    openrouter_model: str = "mistralai/mistral-7b-instruct:free"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_referer: str = "https://beyondchats.com"
    openrouter_app_title: str = "Article Enhancer"
    openai_api_key: str = ""
    openai_model: str = "gpt-4.1-mini"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-latest"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama2"

    # Generation limits and retry policy
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4000
    llm_simplified_temperature: float = 0.5
    llm_simplified_max_tokens: int = 1200
    llm_timeout_seconds: int = 30
    llm_retry_max_attempts: int = 2
    llm_retry_backoff_seconds: float = 1.0

    # Competitor discovery
    google_api_key: str = ""
    google_search_engine_id: str = ""
    google_search_api_url: str = "https://www.googleapis.com/customsearch/v1"
    duckduckgo_html_url: str = "https://html.duckduckgo.com/html/"
    search_max_results: int = 5
    competitor_articles_to_fetch: int = 2
    search_timeout_seconds: int = 10
    own_domain: str = "beyondchats.com"
    excluded_result_markers: str = "youtube.com,wikipedia.org,.gov,pdf,duckduckgo.com"

    # Page fetching / extraction
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    alternate_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    fetch_timeout_seconds: int = 30
    min_article_length: int = 500
    body_fallback_min_words: int = 200
    pre_request_delay_min_seconds: float = 2.0
    pre_request_delay_max_seconds: float = 4.0
    inter_request_delay_min_seconds: float = 3.0
    inter_request_delay_max_seconds: float = 6.0

    # Prompt shaping
    original_excerpt_chars: int = 3000
    simplified_excerpt_chars: int = 800
    competitor_title_chars: int = 80
    references_cap: int = 5

    # Output normalization
    formatter_deterministic: bool = False
    formatter_break_probability: float = 0.4
    formatter_fixed_paragraph_sentences: int = 3

    # Storage collaborator
    storage_api_url: str = "http://localhost:5000/api"
    storage_timeout_seconds: int = 30
    max_articles_to_process: int = 5
    document_delay_seconds: float = 6.0

    # Logging
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_to_file: bool = False
    log_dir: str = "./logs"

    @staticmethod
    def _split_csv(value: str) -> List[str]:
        return [token.strip().lower() for token in str(value or "").split(",") if token.strip()]

    def model_for_backend(self, backend: str) -> str:
        mapping = {
            "gemini": self.gemini_model,
            "openrouter": self.openrouter_model,
            "openai": self.openai_model,
            "anthropic": self.anthropic_model,
            "ollama": self.ollama_model,
        }
        return mapping.get(backend, "")

    def backend_routes(self) -> List[Tuple[str, str]]:
        """Configured backend first, then the fallback order, deduplicated.

        Entries may carry an explicit model as ``backend:model``.
        """
        routes: List[Tuple[str, str]] = []
        seen: set[str] = set()
        for token in [str(self.ai_backend or "")] + str(self.ai_fallback_backends or "").split(","):
            token = token.strip()
            if not token:
                continue
            if ":" in token:
                backend, model = token.split(":", 1)
            else:
                backend, model = token, ""
            backend = backend.strip().lower()
            model = model.strip() or self.model_for_backend(backend)
            if not backend or backend in seen:
                continue
            seen.add(backend)
            routes.append((backend, model))
        return routes

    @property
    def excluded_result_marker_list(self) -> List[str]:
        return self._split_csv(self.excluded_result_markers)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
