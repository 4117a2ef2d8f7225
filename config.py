"""Application settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings for the analysis backend."""

    # Server
    host: str = Field("0.0.0.0", description="Interface uvicorn binds to")
    port: int = Field(5000, description="Port uvicorn listens on")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_directory: Optional[Path] = Field(None, description="Directory for the rotating log file")
    log_retention_days: int = Field(14, description="Number of log files to retain")

    # Realtime channel
    welcome_message: str = Field("Connected to MUSALYTICS WebSocket server", description="Sent once per connection")
    progress_tick_seconds: float = Field(1.0, gt=0, description="Period between progress ticks")
    progress_step: int = Field(10, gt=0, le=100, description="Progress increment per tick")
    progress_ceiling: int = Field(90, gt=0, lt=100, description="Highest time-based progress value")

    # Detection
    detection_backend: Literal["catalog", "openai"] = Field("catalog", description="Detection provider to use")
    detection_min_latency: float = Field(3.0, ge=0, description="Placeholder provider minimum latency (seconds)")
    detection_max_latency: float = Field(5.0, ge=0, description="Placeholder provider maximum latency (seconds)")
    openai_model: str = Field("gpt-4o-mini", description="Vision model used by the OpenAI provider")

    # Recent scans
    recent_demo_enabled: bool = Field(True, description="Return demo scans while no analyses are stored")
    recent_default_limit: int = Field(10, gt=0, description="Default number of recent scans returned")

    @model_validator(mode="after")
    def _check_latency_range(self) -> "Settings":
        if self.detection_max_latency < self.detection_min_latency:
            raise ValueError("detection_max_latency must be >= detection_min_latency")
        return self

    model_config = SettingsConfigDict(
        env_prefix="MUSALYTICS_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Cached Settings instance built from the process environment."""
    return Settings()
