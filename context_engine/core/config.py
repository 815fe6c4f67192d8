"""Configuration management for the context engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Process-level defaults loaded from environment variables.

    Per-call tunables (budget overrides, summarization and expansion options)
    are passed as option records and never read from here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    CONTEXT_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, test, prod")
    LOG_LEVEL: str | None = Field(
        default=None, description="Explicit log level; overrides the environment default"
    )

    # Tokenizer
    TOKENIZER_ENCODING: str = Field(
        default="cl100k_base", description="tiktoken encoding used for token counting"
    )

    # Budget allocation
    DEFAULT_CONTEXT_TOKENS: int = Field(
        default=150_000, ge=1, description="Default working context size for allocation"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()
