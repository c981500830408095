"""Configuration service for managing application settings."""

import json
from pathlib import Path

import structlog

from ..models import AppConfig
from .errors import ConfigurationError, ValidationError

log = structlog.stdlib.get_logger()

CONFIG_FILE = "config.json"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
MAX_REQUEST_TIMEOUT = 300.0


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for managing application configuration.

    The configuration file holds the RAWG API key plus a couple of runtime
    settings. A missing file is created with defaults on first load.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "playedyet" / CONFIG_FILE
        self._cached: AppConfig | None = None
        log.info("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file or return default configuration."""
        if not self.config_path.exists():
            log.info("Configuration file not found, writing defaults")
            config = self._get_default_config()
            try:
                self._write(config)
            except OSError as e:
                log.error("Failed to write default configuration", error=str(e))
            self._cached = config
            return config

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data: dict[str, str | int | float | None] = json.load(f)

            if not isinstance(data, dict):
                raise TypeError(f"Expected JSON object, got {type(data).__name__}")

            config = self._dict_to_config(data)
            validation_result = self.validate_config(config)

            if not validation_result.is_valid:
                log.warning("Invalid configuration loaded, using defaults", errors=validation_result.errors)
                config = self._get_default_config()
            else:
                log.info("Configuration loaded successfully")

        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error("Failed to load configuration, using defaults", error=str(e))
            config = self._get_default_config()

        self._cached = config
        return config

    def save_config(self, config: AppConfig) -> None:
        """Save configuration to file.

        Raises:
            ConfigurationError: If the configuration does not validate
            OSError: If the file cannot be written
        """
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ConfigurationError(
                f"Invalid configuration: {', '.join(validation_result.errors)}",
                setting="config",
            )

        try:
            self._write(config)
        except OSError as e:
            log.error("Failed to save configuration", error=str(e))
            raise

        self._cached = config
        log.info("Configuration saved successfully")

    def get_api_key(self) -> str:
        """Current API key, reading the file if nothing is loaded yet."""
        config = self._cached or self.load_config()
        return config.api_key

    def save_api_key(self, api_key: str) -> AppConfig:
        """Persist a new API key, keeping the other settings.

        Raises:
            ValidationError: If the key is blank
        """
        key = api_key.strip()
        if not key:
            raise ValidationError("Please enter an API key", field="api_key")

        current = self._cached or self.load_config()
        config = AppConfig(
            api_key=key,
            log_level=current.log_level,
            request_timeout=current.request_timeout,
        )
        self.save_config(config)
        log.info("API key saved")
        return config

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not isinstance(config.api_key, str):
            errors.append("api_key must be a string")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")

        if isinstance(config.request_timeout, bool) or not isinstance(config.request_timeout, (int, float)):
            errors.append("request_timeout must be a number")
        elif not 0 < config.request_timeout <= MAX_REQUEST_TIMEOUT:
            errors.append(f"request_timeout must be greater than 0 and at most {MAX_REQUEST_TIMEOUT:g} seconds")

        return ValidationResult(len(errors) == 0, errors)

    def _write(self, config: AppConfig) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self._config_to_dict(config), f, indent=2, ensure_ascii=False)

    def _get_default_config(self) -> AppConfig:
        return AppConfig()

    def _config_to_dict(self, config: AppConfig) -> dict[str, str | int | float | None]:
        """Convert AppConfig to dictionary for JSON serialization."""
        return {
            "apiKey": config.api_key,
            "logLevel": config.log_level,
            "requestTimeout": config.request_timeout,
        }

    def _dict_to_config(self, data: dict[str, str | int | float | None]) -> AppConfig:
        """Convert dictionary to AppConfig, defaulting absent keys."""
        api_key_raw = data.get("apiKey", "")
        timeout_raw = data.get("requestTimeout", 30.0)

        return AppConfig(
            api_key=api_key_raw if isinstance(api_key_raw, str) else "",
            log_level=str(data.get("logLevel", "INFO")).upper(),
            request_timeout=float(timeout_raw) if isinstance(timeout_raw, (int, float)) else 30.0,
        )
