"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache

_DATA_DIR = Path(__file__).resolve().parent / "data"


def _split_csv(raw: str) -> list[str]:
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


class Settings(BaseSettings):
    """Centralised settings. Every field has a default so an empty environment still boots."""

    # Database
    database_url: str = Field(
        "sqlite+aiosqlite:///./safeorder.db", env="DATABASE_URL"
    )

    # Google AI
    google_api_key: str = Field("", env="GOOGLE_API_KEY")
    llm_model: str = Field("gemini-2.5-flash", env="LLM_MODEL")
    llm_fallback_model: str = Field("gemma-3-12b-it", env="LLM_FALLBACK_MODEL")
    llm_timeout_seconds: int = Field(20, env="LLM_TIMEOUT_SECONDS")
    llm_fallback_timeout_seconds: int = Field(40, env="LLM_FALLBACK_TIMEOUT_SECONDS")

    # Conversation tracking
    use_semantic_classifier: bool = Field(True, env="USE_SEMANTIC_CLASSIFIER")
    order_warning_keywords: str = Field(
        "contains,allergic,not safe", env="ORDER_WARNING_KEYWORDS"
    )
    safety_warning_phrases: str = Field(
        "traces,cross,contamination,shared equipment,same fryer,"
        "can't guarantee,cannot guarantee,might contain,not safe,wouldn't recommend",
        env="SAFETY_WARNING_PHRASES",
    )

    # Scenarios
    scenario_manifest_path: str = Field(
        str(_DATA_DIR / "scenarios.json"), env="SCENARIO_MANIFEST_PATH"
    )

    # Session store
    session_ttl_seconds: int = Field(3600, env="SESSION_TTL_SECONDS")
    max_active_sessions: int = Field(1000, env="MAX_ACTIVE_SESSIONS")

    # Security
    allowed_origins: str = Field(
        "http://localhost:3000,http://localhost:8081",
        env="ALLOWED_ORIGINS",
    )

    # App
    app_env: str = Field("development", env="APP_ENV")
    log_level: str = Field("INFO", env="LOG_LEVEL")

    # Derived
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list."""
        return [o.strip() for o in self.allowed_origins.split(",")]

    @property
    def order_warning_keyword_list(self) -> list[str]:
        """Keywords that stop a waiter reply from confirming an order."""
        return _split_csv(self.order_warning_keywords)

    @property
    def safety_warning_phrase_list(self) -> list[str]:
        """Phrases that mark a waiter reply as a safety warning."""
        return _split_csv(self.safety_warning_phrases)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()
