"""Configuration management using Pydantic settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Cozy Defense"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Game session
    difficulty_level: str = "1"         # "1" Meadow, "2" Forest, "3" Volcano
    paths_file: str = ""                # JSON path asset; empty = built-in routes
    auto_start: bool = False            # start wave 1 as soon as the app is up
    auto_advance_waves: bool = True     # next wave after the break without a click
    random_seed: Optional[int] = None   # lane choice; set for reproducible sessions

    # Simulation loop
    tick_interval: float = 0.05         # seconds of game time per tick


settings = Settings()
