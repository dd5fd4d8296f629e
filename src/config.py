"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import (
    DEFAULT_CALL_LIST_LIMIT,
    DEFAULT_DAYS_BACK,
    DEFAULT_DEPARTMENT,
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_SEARCH_RESULT_LIMIT,
    DEFAULT_SIMILARITY_THRESHOLD,
    MAX_CHAT_MESSAGES_PER_MINUTE,
    MAX_MESSAGE_LENGTH_CHARS,
    RATE_LIMIT_WINDOW_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase Configuration
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_service_key: str = Field(..., description="Supabase service role key")

    # PydanticAI Gateway Configuration
    pydantic_ai_gateway_api_key: str = Field(
        ..., description="PydanticAI Gateway API key (paig_xxx)"
    )
    default_model: str = Field(
        default="gateway/anthropic:claude-sonnet-4-0",
        description="Default LLM model used for classification, analysis and replies",
    )
    fallback_model: str = Field(
        default="gateway/anthropic:claude-3-5-haiku-latest",
        description="Fallback Anthropic model if primary fails",
    )

    # Embedding (via PydanticAI Gateway)
    embedding_model: str = Field(
        default="gateway/openai:text-embedding-3-small",
        description="Embedding model via PAIG (e.g. gateway/openai:text-embedding-3-small)",
    )
    embedding_dimensions: int = Field(
        default=DEFAULT_EMBEDDING_DIMENSIONS,
        description="Embedding vector dimension (matches text-embedding-3-small)",
    )

    # ==========================================================================
    # Chat Pipeline Configuration
    # ==========================================================================

    search_result_limit: int = Field(
        default=DEFAULT_SEARCH_RESULT_LIMIT,
        description="Max number of transcript chunks returned by call search",
    )
    search_similarity_threshold: float = Field(
        default=DEFAULT_SIMILARITY_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Minimum similarity for semantic call search hits",
    )
    call_list_limit: int = Field(
        default=DEFAULT_CALL_LIST_LIMIT,
        description="Max calls returned when listing calls",
    )
    default_days_back: int = Field(
        default=DEFAULT_DAYS_BACK,
        ge=0,
        description="Lookback window used when a message names no period",
    )
    default_department: str = Field(
        default=DEFAULT_DEPARTMENT,
        description="Department summarized when a team query names none",
    )
    max_message_length: int = Field(
        default=MAX_MESSAGE_LENGTH_CHARS,
        description="Maximum accepted chat message length (chars)",
    )

    # ==========================================================================
    # Rate Limiting Configuration
    # ==========================================================================

    rate_limit_max_messages: int = Field(
        default=MAX_CHAT_MESSAGES_PER_MINUTE,
        description="Max chat messages per caller per rate limit window",
    )
    rate_limit_window_seconds: int = Field(
        default=RATE_LIMIT_WINDOW_SECONDS,
        description="Rate limit sliding window duration in seconds",
    )

    # Environment
    env: Literal["local", "staging", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO", description="Python logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for AI observability"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
