"""Configuration data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    api_key: str = ""  # RAWG API key, empty until the user sets one
    log_level: str = "INFO"
    request_timeout: float = 30.0  # Seconds per metadata/cover request
