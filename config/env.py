"""Deployment configuration loaded from environment variables or a ``.env`` file."""
from pathlib import Path
from typing import Annotated
from typing import Literal

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import NoDecode
from pydantic_settings import SettingsConfigDict

BASE_DIR = Path(__file__).resolve(strict=True).parent.parent

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class VoicelabEnv(BaseSettings):
    """Values that change between deployments. Everything else lives in settings modules."""

    # Django
    DJANGO_DEBUG: bool = Field(default=False, description="Django debug mode")
    DJANGO_SECRET_KEY: str = Field(default="", description="Django secret key")
    DJANGO_ALLOWED_HOSTS: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Comma-separated host names",
    )

    # Storage
    DATABASE_PATH: str = Field(
        default=str(BASE_DIR / "voicelab.sqlite3"),
        description="Path to SQLite database file",
    )
    HUEY_DB_PATH: str = Field(
        default=str(BASE_DIR / "huey.sqlite3"),
        description="Path to the huey queue database",
    )
    HUEY_IMMEDIATE: bool = Field(default=False, description="Run huey tasks inline")

    # Voice CRT
    VOICE_RESPONSES_URL: str = Field(
        default="http://localhost:8000/api/voice-responses",
        description="Where finished trial records are POSTed",
    )

    # Logging
    VOICELAB_LOG_LEVEL: LogLevel = Field(default="INFO", description="Level of the voicelab logger")

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("DJANGO_ALLOWED_HOSTS", mode="before")
    @classmethod
    def _split_hosts(cls, value):
        if isinstance(value, str):
            return [host.strip() for host in value.split(",") if host.strip()]
        return value


class LocalEnv(VoicelabEnv):
    """Developer defaults: debug on, tasks run inline."""

    DJANGO_DEBUG: bool = Field(default=True, description="Django debug mode")
    DJANGO_SECRET_KEY: str = Field(
        default="local-only-7Qm2u1h9Zk0dXfPz4wVtLr8sNc3bYe6a",
        description="Django secret key",
    )
    HUEY_IMMEDIATE: bool = Field(default=True, description="Run huey tasks inline")
