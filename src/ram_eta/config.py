"""Application configuration and settings management."""

import math
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="RAM_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "RAM ETA API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for inputs and run outputs.")

    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "walking", "cycling"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    osrm_timeout_seconds: float = Field(default=60.0, gt=0.0)
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    osrm_max_coordinates_per_request: int = Field(
        default=100,
        ge=2,
        description="Upper bound on coordinates sent in a single table URL.",
    )

    grid_size_km: float = Field(default=30.0, gt=0.0, description="Side of the square grid cells in kilometres.")
    max_time_seconds: float = Field(
        default=1800.0,
        gt=0.0,
        description="Initial time budget used to size the POI search buffer.",
    )
    max_speed_kmh: float = Field(default=120.0, gt=0.0)
    walk_speed_kmh: float = Field(
        default=4.0,
        gt=0.0,
        description="Speed used to cover the distance between an origin and the road it snaps to.",
    )

    poi_min_candidates: int = Field(default=4, ge=1)
    buffer_step_seconds: float = Field(default=900.0, gt=0.0)
    buffer_max_iterations: Optional[int] = Field(
        default=200,
        ge=1,
        description="Cap on buffer growth steps; None searches until the minimum is met.",
    )

    area_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        description="Simultaneous area worker processes. Defaults to 1.5x the CPU count.",
    )
    square_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        description="Simultaneous grid squares inside one area worker. Defaults to the CPU count.",
    )
    worker_start_method: Literal["spawn", "fork", "forkserver"] = "spawn"
    worker_poll_interval_seconds: float = Field(default=0.5, gt=0.0)

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("osrm_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text.rstrip("/") or None

    def resolved_area_concurrency(self) -> int:
        if self.area_concurrency:
            return self.area_concurrency
        return max(1, math.floor((os.cpu_count() or 1) * 1.5))

    def resolved_square_concurrency(self) -> int:
        if self.square_concurrency:
            return self.square_concurrency
        return max(1, os.cpu_count() or 1)


settings = Settings()
