from __future__ import annotations

from functools import lru_cache
from pathlib import Path
import json
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables with validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Miqro", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="production",
        alias="APP_ENV",
    )
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, ge=1, le=65535, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    workflows_dir: Path | None = Field(default=None, alias="MIQRO_WORKFLOWS_DIR")
    workflow_modules: Annotated[list[str], NoDecode] = Field(default_factory=list, alias="MIQRO_WORKFLOW_MODULES")
    duplicate_policy: Literal["overwrite", "error"] = Field(
        default="overwrite",
        alias="MIQRO_DUPLICATE_POLICY",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept any case and reject names the logging module does not know."""
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG.")
        return normalized

    @field_validator("workflow_modules", mode="before")
    @classmethod
    def parse_workflow_modules(cls, value: str | list[str]) -> list[str]:
        """Support comma-separated module paths from environment variables."""
        if isinstance(value, str):
            if not value.strip():
                return []
            if value.strip().startswith("["):
                return json.loads(value)
            return [module.strip() for module in value.split(",") if module.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()
