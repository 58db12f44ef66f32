"""Shared configuration management for the extraction service.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_EXTRACTION_PROVIDER=openai

    Provider API keys are not settings: they are read from the variables each
    provider SDK already expects (GEMINI_API_KEY, OPENAI_API_KEY).
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="nfe-extraction-service",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Inference provider configuration
    extraction_provider: Literal["gemini", "openai", "ollama"] = Field(
        default="gemini",
        description=(
            "Inference provider: gemini (Google API, reads PDFs directly), "
            "openai (cloud API), ollama (self-hosted LLM, text only)"
        ),
    )
    gemini_model: str = Field(
        default="gemini-2.5-pro",
        description="Gemini model used for extraction",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model used for extraction",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server base URL",
    )
    ollama_model: str = Field(
        default="qwen2.5:7b",
        description="Ollama model to use for extraction (e.g., qwen2.5:7b, llama3.1:8b)",
    )
    inference_max_attempts: int = Field(
        default=1,
        ge=1,
        description="Attempts per inference call inside the provider adapter (1 = no retry)",
    )
    inference_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="HTTP timeout for a single inference call",
    )

    # Upload limits
    max_upload_bytes: int = Field(
        default=15 * 1024 * 1024,
        gt=0,
        description="Maximum accepted document size in bytes",
    )
    allowed_media_types: list[str] = Field(
        default_factory=lambda: ["application/pdf"],
        description="Media types accepted by the upload endpoint",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
