"""Configuration management for the SOP engine."""

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
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Anthropic configuration (required only for generative calls)
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")

    # Environment
    SOP_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Narrative text generation
    SOP_TEXT_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model for ISO narrative generation"
    )
    SOP_TEXT_MAX_TOKENS: int = Field(default=8000, description="Max output tokens for narrative")
    SOP_TEXT_TEMPERATURE: float = Field(default=0.3, description="Narrative sampling temperature")

    # Diagram generation
    SOP_CHART_MODEL: str = Field(
        default="claude-haiku-4-5-20251001", description="Model for diagram generation"
    )
    SOP_CHART_MAX_TOKENS: int = Field(default=1500, description="Max output tokens per diagram")
    SOP_CHART_TEMPERATURE: float = Field(default=0.2, description="Diagram sampling temperature")

    # Workflow summarization
    SOP_SUMMARY_MODEL: str = Field(
        default="claude-haiku-4-5-20251001", description="Model for workflow summaries"
    )
    SOP_SUMMARY_MAX_TOKENS: int = Field(default=2000, description="Max output tokens for summaries")
    SOP_FEEDBACK_HISTORY_LIMIT: int = Field(
        default=10, description="Feedback entries retained per session"
    )

    # Export
    SOP_EXPORT_DIR: str = Field(default="./exports", description="Transient export handoff directory")
    SOP_DEFAULT_AUTHOR: str = Field(default="SOP Engine", description="Author stamped on documents")
    SOP_DEFAULT_DEPARTMENT: str = Field(
        default="Operations", description="Department stamped on documents"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    return Settings()
