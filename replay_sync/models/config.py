"""Configuration data models."""

from dataclasses import dataclass

from .. import __version__


DEFAULT_USER_AGENT = f"replay-sync/{__version__}"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    metadata_base_url: str = "https://ch.tetr.io"
    content_base_url: str = "https://inoue.szy.lol"
    rate_limit_delay: float = 5.0  # Fixed delay once the content service returns 429
    request_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
