"""
backend/config.py

Application configuration via Pydantic Settings.
All values can be overridden with environment variables or a .env file.

Quick start — create a .env file in your project root:
    API_PORT=8080
    SIMULATOR_ENABLED=false
    CUE_MODE=console
    LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_list(v):
    if isinstance(v, str):
        import json as _json
        v = v.strip()
        if v.startswith("["):
            try:
                return _json.loads(v)
            except ValueError:
                pass
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Sliding-window history: fixed ceiling, independent of rule configuration
    HISTORY_RETENTION_SECONDS: int = 300

    # Alert engine
    MAX_TRIGGERED_ALERTS: int = 10
    DEFAULT_REACTIVATION_COOLDOWN_SECONDS: int = 60
    RULE_MIN_WINDOW_SECONDS: int = 5
    RULE_MAX_WINDOW_SECONDS: int = 300

    # Audible cue: "console" rings the terminal, "websocket" pushes play_cue
    CUE_MODE: Literal["console", "websocket", "none"] = "websocket"

    # Mocked detection feed
    SIMULATOR_ENABLED: bool = True
    SIMULATOR_INTERVAL_SECONDS: float = 1.0
    SIMULATOR_CLASSES: Annotated[list[str], NoDecode] = ["person", "car", "bus", "truck", "bicycle"]
    SIMULATOR_MAX_COUNT: int = 4
    SIMULATOR_SEED: int | None = None

    # Dashboard
    TIMELINE_MAX_MINUTES: int = 60
    CAMERAS_ACTIVE: int = 1

    # Queues
    ALERT_QUEUE_SIZE: int = 500
    BROADCAST_QUEUE_SIZE: int = 1_000

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 5000
    CORS_ORIGINS: Annotated[list[str], NoDecode] = [
        "http://localhost:5000",
        "http://localhost:5173",
        "http://127.0.0.1:5000",
        "http://127.0.0.1:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("SIMULATOR_CLASSES", "CORS_ORIGINS", mode="before")
    @classmethod
    def parse_list(cls, v):
        return _split_list(v)

    @field_validator("RULE_MAX_WINDOW_SECONDS")
    @classmethod
    def window_within_retention(cls, v, info):
        retention = info.data.get("HISTORY_RETENTION_SECONDS", 300)
        if v > retention:
            raise ValueError(
                f"RULE_MAX_WINDOW_SECONDS ({v}) cannot exceed "
                f"HISTORY_RETENTION_SECONDS ({retention})"
            )
        return v


settings = Settings()
