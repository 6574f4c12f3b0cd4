"""Configuration service for loading application settings."""

import json
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import structlog

from ..errors import ConfigurationError
from ..models import AppConfig

log = structlog.stdlib.get_logger()


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "replay-sync" / "config.json"


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for loading application configuration from a JSON file."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or DEFAULT_CONFIG_PATH
        log.debug("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file or return default configuration.

        A missing file means defaults. A file that exists but cannot be used
        is an error rather than a silent fallback.

        Raises:
            ConfigurationError: If the file is unreadable, malformed or invalid
        """
        if not self.config_path.exists():
            log.debug("Configuration file not found, using defaults", config_path=str(self.config_path))
            return AppConfig()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.error("Failed to load configuration", config_path=str(self.config_path), error=str(e))
            raise ConfigurationError(
                f"Failed to read configuration file {self.config_path}",
                current_value=str(e),
                expected="a readable JSON object",
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {self.config_path} must contain a JSON object",
                current_value=type(data).__name__,
                expected="a JSON object",
            )

        config = self._dict_to_config(data)
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            log.error("Invalid configuration", errors=validation_result.errors)
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(validation_result.errors)}",
            )

        log.debug("Configuration loaded successfully", config_path=str(self.config_path))
        return config

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        for name, url in (
            ("metadata_base_url", config.metadata_base_url),
            ("content_base_url", config.content_base_url),
        ):
            parsed = urlparse(url) if isinstance(url, str) else None
            if parsed is None or parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(f"{name} must be an absolute http(s) URL")

        if not isinstance(config.rate_limit_delay, (int, float)) or isinstance(config.rate_limit_delay, bool):
            errors.append("rate_limit_delay must be a number")
        elif config.rate_limit_delay < 0 or config.rate_limit_delay > 300:
            errors.append("rate_limit_delay must be between 0 and 300 seconds")

        if not isinstance(config.request_timeout, (int, float)) or isinstance(config.request_timeout, bool):
            errors.append("request_timeout must be a number")
        elif config.request_timeout <= 0 or config.request_timeout > 600:
            errors.append("request_timeout must be greater than 0 and at most 600 seconds")

        if not isinstance(config.user_agent, str) or not config.user_agent.strip():
            errors.append("user_agent cannot be empty")

        return ValidationResult(len(errors) == 0, errors)

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert dictionary to AppConfig, keeping defaults for absent keys."""
        defaults = AppConfig()

        unknown = sorted(set(data) - set(AppConfig.__dataclass_fields__))
        if unknown:
            log.warning("Ignoring unknown configuration keys", keys=unknown)

        def url(key: str, default: str) -> Any:
            value = data.get(key, default)
            return value.rstrip("/") if isinstance(value, str) else value

        return AppConfig(
            metadata_base_url=url("metadata_base_url", defaults.metadata_base_url),
            content_base_url=url("content_base_url", defaults.content_base_url),
            rate_limit_delay=data.get("rate_limit_delay", defaults.rate_limit_delay),
            request_timeout=data.get("request_timeout", defaults.request_timeout),
            user_agent=data.get("user_agent", defaults.user_agent),
        )
