"""
Configuration Settings

Environment variables and application configuration.
Includes LangSmith tracing setup for observability of the model calls.
"""

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing_extensions import Annotated


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App settings
    app_name: str = "Room Layout Editor API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # API settings
    api_prefix: str = "/api/v1"

    # CORS
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Accept comma-separated string or list for CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Google AI
    google_api_key: str = ""
    # Room photo -> layout JSON
    vision_model_name: str = "gemini-2.5-flash"
    # Layout -> re-rendered room photo
    render_image_model_name: str = "gemini-2.5-flash-image"

    # Upstream call budgets (seconds)
    vision_timeout_seconds: float = 60.0
    render_timeout_seconds: float = 120.0

    # Storage
    storage_backend: Literal["file", "memory"] = "file"
    storage_dir: str = "data"

    # Layout policies
    coordinate_policy: Literal["reject", "clamp"] = "reject"
    merge_base: Literal["current", "original"] = "current"
    validate_after_merge: bool = True

    # Uploads
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_image_types: list[str] = ["image/jpeg", "image/png", "image/webp"]

    # LangSmith Tracing
    langchain_tracing_v2: bool = True
    langchain_api_key: str = ""
    langchain_project: str = "room-layout-editor"
    langchain_endpoint: str = "https://api.smith.langchain.com"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def setup_logging() -> None:
    """Configure root logging once from LOG_LEVEL."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def setup_langsmith() -> bool:
    """
    Setup LangSmith tracing environment variables.

    Call this at application startup to enable tracing.
    Returns True if tracing is enabled, False otherwise.
    """
    settings = get_settings()

    if settings.langchain_api_key and settings.langchain_tracing_v2:
        os.environ["LANGCHAIN_TRACING_V2"] = "true"
        os.environ["LANGCHAIN_API_KEY"] = settings.langchain_api_key
        os.environ["LANGCHAIN_PROJECT"] = settings.langchain_project
        os.environ["LANGCHAIN_ENDPOINT"] = settings.langchain_endpoint

        logger.info("LangSmith tracing enabled (project: %s)", settings.langchain_project)
        return True

    logger.info("LangSmith tracing not configured; set LANGCHAIN_API_KEY to enable it")
    return False
