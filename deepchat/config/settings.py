"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Chat-completion API configuration."""

    api_key: str = Field(default="", description="API key, read from DEEPSEEK_API_KEY")
    base_url: str = Field(
        default="https://api.deepseek.com",
        description="API base URL. Override for proxies or compatible gateways.",
    )
    provider: str = Field(
        default="deepseek",
        description="LiteLLM provider prefix added to bare model ids, e.g. "
                    "'deepseek-chat' is sent as 'deepseek/deepseek-chat'",
    )
    model: str = Field(
        default="deepseek-chat",
        description="Default model: 'deepseek-chat' or 'deepseek-reasoner'",
    )
    max_turns: int = Field(
        default=4, ge=1, description="Maximum model turns per orchestration run"
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Upper bound for one turn's network exchange, retries included. "
                    "None means no limit.",
    )
    tokenizer: str | None = Field(
        default="deepseek-ai/DeepSeek-V3",
        description="tokenizer.json path or HuggingFace hub id used for exact token counts. "
                    "Empty means heuristic counts only.",
    )

    model_config = SettingsConfigDict(env_prefix="DEEPSEEK_")


class RetrySettings(BaseSettings):
    """Backoff for transient (429/503) failures."""

    max_attempts: int = Field(default=3, ge=1, description="Attempts per turn, first try included")
    backoff_base_ms: int = Field(default=500, ge=0, description="Delay before the first retry")
    backoff_max_ms: int = Field(default=8000, ge=0, description="Cap for a single backoff delay")

    model_config = SettingsConfigDict(env_prefix="RETRY_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    client: ClientSettings = Field(default_factory=ClientSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
