"""sysmon configuration via environment / .env file.

Every field can be overridden with a ``SYSMON_``-prefixed environment
variable, e.g. ``SYSMON_HTTP_PORT=8080``.
"""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SYSMON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- HTTP transport ---
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 57996
    SSE_HEARTBEAT_INTERVAL: float = 10.0

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    # stdio mode keeps stderr quiet so MCP clients don't surface noise
    STDIO_LOG_LEVEL: str = "ERROR"

    # --- MCP identity ---
    SERVER_NAME: str = "mcp-system-monitor"
    DEFAULT_PROTOCOL_VERSION: str = "2025-11-25"

    @field_validator("HTTP_PORT")
    @classmethod
    def _check_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"HTTP_PORT must be 1-65535, got {v}")
        return v

    @field_validator("SSE_HEARTBEAT_INTERVAL")
    @classmethod
    def _check_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"SSE_HEARTBEAT_INTERVAL must be > 0, got {v}")
        return v

    @field_validator("LOG_LEVEL", "STDIO_LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings
