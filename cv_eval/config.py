# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# All tunables live here and load from (highest priority first):
#   1. Environment variables (e.g., `LLM_API_KEY=...`)
#   2. Values from the .env file
#   3. Default values defined below
#
# USAGE:
#   from cv_eval.config import settings
#   print(settings.retry_base_delay_ms)
# =============================================================================

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Defaults are suitable for local development. With no API key set the
    service still runs end-to-end: every LLM stage degrades to its
    rule-based fallback.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "AI CV Evaluator"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    # -------------------------------------------------------------------------
    # LLM Configuration — Multi-Provider
    # -------------------------------------------------------------------------
    # Two providers are supported:
    #   - "openai_compatible": OpenAI itself or any OpenAI-compatible API
    #   - "anthropic": Claude via native Anthropic SDK
    #
    # Example configs:
    #   OpenAI:    provider=openai_compatible, model=gpt-4o-mini
    #   DeepSeek:  provider=openai_compatible, base_url=https://api.deepseek.com/v1, model=deepseek-chat
    #   Claude:    provider=anthropic, model=claude-sonnet-4-6
    # -------------------------------------------------------------------------
    llm_provider: str = "openai_compatible"  # "openai_compatible" or "anthropic"
    llm_base_url: str | None = None  # Only needed for non-OpenAI endpoints
    llm_api_key: str | None = None   # Overrides provider-specific key if set
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1500

    # -------------------------------------------------------------------------
    # External-Call Resilience
    # -------------------------------------------------------------------------
    # Delay before attempt n+1 is min(base * 2^(n-1), max):
    #   1000ms, 2000ms, 4000ms, ... capped at 10000ms.
    # After retry_max_attempts failures the calling stage's fallback is used.
    # -------------------------------------------------------------------------
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 10000

    # -------------------------------------------------------------------------
    # File Upload
    # -------------------------------------------------------------------------
    upload_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_mimetypes: list[str] = [
        "text/plain",
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ]

    # -------------------------------------------------------------------------
    # Document Store / Retrieval
    # -------------------------------------------------------------------------
    # chunk_min_length: paragraphs of this many characters or fewer are
    # dropped (headers, stray lines). retrieval_top_k: chunks returned per
    # query.
    # -------------------------------------------------------------------------
    chunk_min_length: int = 50
    keyword_limit: int = 20
    retrieval_top_k: int = 3

    # -------------------------------------------------------------------------
    # Prompt Budget
    # -------------------------------------------------------------------------
    # Submitted documents are truncated to these many characters before
    # being embedded into a prompt.
    # -------------------------------------------------------------------------
    cv_prompt_char_limit: int = 3000
    project_prompt_char_limit: int = 2000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    In tests, override with FastAPI's dependency_overrides or construct
    `Settings(...)` directly and pass it to the component under test.
    """
    return Settings()


settings = get_settings()
