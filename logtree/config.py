"""Process configuration, fixed at startup and read-only afterwards."""

from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .error_handling import ConfigError


class Settings(BaseSettings):
    """Settings loaded from LOGTREE_* environment variables or explicit values."""

    model_config = SettingsConfigDict(
        env_prefix="LOGTREE_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    log_dir: str = Field(default="/var/log", description="Directory served and watched")
    port: int = Field(default=8080, ge=1, le=65535, description="TCP port to listen on")
    host: str = Field(default="0.0.0.0", description="Address to bind")
    poll_interval: float = Field(
        default=0.1, gt=0, description="Watcher polling interval in seconds"
    )
    ignore_hidden: bool = Field(default=True, description="Skip dot-entries in the watcher")
    watch: bool = Field(default=True, description="Start the change watcher with the server")
    decode_errors: Literal["strict", "replace"] = Field(
        default="strict", description="How invalid UTF-8 in file content is handled"
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    log_file: Optional[str] = Field(default=None, description="Optional extra log file")

    @field_validator("log_dir")
    @classmethod
    def log_dir_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("log_dir must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


def load_settings(**overrides) -> Settings:
    """Build Settings, ignoring overrides that are None."""
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]}
        ) from e
