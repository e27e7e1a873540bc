"""Application configuration settings."""

from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "protein-voice"


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PROTEIN_VOICE_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="Credentials shared by the transcription and extraction calls.",
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        alias="PROTEIN_VOICE_OPENAI_BASE_URL",
        description="Override of the OpenAI API base URL (proxies, test servers).",
    )
    transcription_model: str = Field(default="whisper-1", alias="PROTEIN_VOICE_TRANSCRIPTION_MODEL")
    transcription_language: str = Field(default="en", alias="PROTEIN_VOICE_TRANSCRIPTION_LANGUAGE")
    extraction_model: str = Field(default="gpt-4o-mini", alias="PROTEIN_VOICE_EXTRACTION_MODEL")
    extraction_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        alias="PROTEIN_VOICE_EXTRACTION_TEMPERATURE",
    )
    extraction_prompt_file: Optional[Path] = Field(
        default=None,
        alias="PROTEIN_VOICE_EXTRACTION_PROMPT_FILE",
        description="Optional file replacing the bundled extraction instruction.",
    )
    request_timeout: float = Field(default=30.0, gt=0, alias="PROTEIN_VOICE_REQUEST_TIMEOUT")

    scratch_dir: Path = Field(
        default_factory=_default_scratch_dir,
        alias="PROTEIN_VOICE_SCRATCH_DIR",
        description="Directory holding recordings until they are transcribed.",
    )
    sample_rate: int = Field(default=16000, gt=0, alias="PROTEIN_VOICE_SAMPLE_RATE")
    channels: int = Field(default=1, ge=1, le=2, alias="PROTEIN_VOICE_CHANNELS")

    database_url: str = Field(
        default="sqlite+pysqlite:///protein_voice.db",
        alias="PROTEIN_VOICE_DATABASE_URL",
    )
    default_protein_goal: int = Field(default=150, gt=0, alias="PROTEIN_VOICE_DEFAULT_GOAL")

    allow_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        alias="PROTEIN_VOICE_ALLOW_ORIGINS",
        description="Comma separated list of origins authorised for CORS.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            parts = [origin.strip() for origin in value.split(",")]
            origins = [origin for origin in parts if origin]
            return origins or ["*"]
        return value

    @property
    def has_credentials(self) -> bool:
        return bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of application settings."""

    return Settings()


def service_name() -> str:
    return os.getenv("OTEL_SERVICE_NAME", "protein-voice")


__all__ = ["Settings", "get_settings", "service_name"]
