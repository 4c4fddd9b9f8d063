from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class SiteSettings(BaseSettings):
    """
    Configuration for the Site Agent.
    """

    # Load environment variables from .env if present.
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # ignore unknown env vars
    )

    # --- Identity ---
    store_id: str = "s001"

    # --- Static floor configuration (loaded once at startup) ---
    zone_map_path: str = "configs/zone_map_s001.json"
    camera_calibration_path: Optional[str] = "configs/camera_calibration_s001.json"

    # --- Event feed ---
    max_events: int = 600  # clamped to 1..1000 by the event store
    default_source: str = "api"  # source used for records that name none
    live_window_sec: int = 300  # events older than this are not reacted to

    # --- Patrol simulation ---
    robot_count: int = 4
    tick_ms: int = 80
    random_seed: Optional[int] = None  # set for reproducible runs

    # --- Logging ---
    log_level: str = "INFO"
    debug: bool = False

    # --- Site HTTP API ---
    http_host: str = "127.0.0.1"
    http_port: int = 8128
