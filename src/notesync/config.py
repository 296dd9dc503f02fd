"""Configuration management for Notesync."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NOTESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Notes API
    api_url: str = Field(
        default="http://localhost:4000/api",
        description="Base URL of the notes and AI HTTP API",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for HTTP requests",
    )

    # Autosave
    autosave_delay: float = Field(
        default=2.0,
        ge=0.1,
        le=60,
        description="Seconds of input quiescence before an automatic save",
    )
    force_save_interval: float = Field(
        default=30.0,
        ge=1,
        le=3600,
        description="Maximum seconds a dirty note may stay unsaved under continuous editing",
    )
    temp_id_prefix: str = Field(
        default="temp-",
        min_length=1,
        description="Prefix marking client-generated ids of notes not yet persisted",
    )

    # Ollama LLM
    ollama_host: str = Field(
        default="https://ollama.com",
        description="Ollama API host",
    )
    ollama_model: str = Field(
        default="llama3.1:8b",
        description="Ollama model to use for AI content operations",
    )
    ollama_api_key: str = Field(
        default="",
        description="Ollama API key (default: from OLLAMA_API_KEY env var)",
    )
    ai_temperature: float = Field(
        default=0.3,
        ge=0,
        le=2,
        description="Sampling temperature for AI content operations",
    )
    default_target_language: str = Field(
        default="Spanish",
        description="Target language used when translating without an explicit choice",
    )

    # Encryption
    kdf_iterations: int = Field(
        default=390_000,
        ge=100_000,
        description="PBKDF2 iterations used to derive note encryption keys",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI",
    )

    @model_validator(mode="after")
    def _check_intervals(self) -> "Settings":
        if self.force_save_interval < self.autosave_delay:
            raise ValueError("force_save_interval must be >= autosave_delay")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
