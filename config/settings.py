"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.llm_config import LLMConfig


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False
    log_level: str = "info"

    # ── LLM ──────────────────────────────────────────────────
    default_model: str = "gemini/gemini-2.5-flash"
    classifier_model: str = "gemini/gemini-2.5-flash"  # Topic shift detection (fast)
    tutor_model: str = "gemini/gemini-2.5-flash"  # Parent agent / conversation engine
    research_model: str = "gemini/gemini-2.5-flash"  # Summarises web search findings
    materials_model: str = "gemini/gemini-2.5-flash"  # Flashcards, quizzes, exams, slides
    max_tokens: int = 4096
    llm_max_concurrency: int = 10  # Concurrent outbound model calls per worker

    # ── LLM Generation Defaults (all optional, None = model default) ──
    temperature: float | None = None
    top_p: float | None = None
    seed: int | None = None

    # Provider API keys
    gemini_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    dashscope_api_key: str = ""

    # ── Child producers ──────────────────────────────────────
    brave_api_key: str = ""
    research_result_count: int = 5
    research_timeout: int = 10  # seconds
    notebook_max_chars: int = 20000

    # ── Topic shift classifier ───────────────────────────────
    classifier_history_window: int = 3

    # ── Background enrichment ────────────────────────────────
    enrichment_enabled: bool = True
    enrichment_max_concurrency: int = 2
    enrichment_max_pending: int = 32
    enrichment_flashcard_count: int = 3
    enrichment_quiz_count: int = 2

    # ── Sessions ─────────────────────────────────────────────
    session_ttl: int = 7200  # seconds of inactivity before a session is evicted

    # ── Helpers ───────────────────────────────────────────────

    def get_default_llm_config(self) -> LLMConfig:
        """Build an :class:`LLMConfig` from global .env defaults."""
        return LLMConfig(
            model=self.default_model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            seed=self.seed,
        )

    def model_settings_for(self, config: LLMConfig) -> dict:
        """Global defaults with *config* on top, as PydanticAI ``model_settings``."""
        return self.get_default_llm_config().merge(config).to_model_settings()


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
