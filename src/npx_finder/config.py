"""
NPX Finder Configuration

This module handles logging setup and the options record shared by every
registry request made during a discovery.
"""

import logging
import os

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_WEB_URL = "https://www.npmjs.com"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

finder_logger = structlog.get_logger("npx_finder")


def configure_logging(level: int = logging.INFO):
    """Configure simple structured logging for the finder."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


class FinderOptions(BaseModel):
    """Retry, timeout and endpoint settings for registry requests."""

    timeout_ms: int = Field(default=10000, description="Per-attempt request timeout in milliseconds")
    max_retries: int = Field(default=3, description="Retries after the first failed attempt")
    retry_delay_ms: int = Field(default=1000, description="Fixed delay between attempts in milliseconds")
    registry_url: str = Field(default=DEFAULT_REGISTRY_URL, description="Base URL of the registry API")
    web_url: str = Field(default=DEFAULT_WEB_URL, description="Base URL of the registry website")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('timeout_ms')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("timeout_ms must be greater than 0")
        return v

    @field_validator('max_retries', 'retry_delay_ms')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("value must not be negative")
        return v

    @field_validator('registry_url', 'web_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip('/')

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_env(cls, **overrides) -> "FinderOptions":
        """
        Build options from NPX_FINDER_* environment variables.

        Args:
            **overrides: Explicit values that take precedence over the environment
        """
        env_map = {
            "timeout_ms": "NPX_FINDER_TIMEOUT_MS",
            "max_retries": "NPX_FINDER_MAX_RETRIES",
            "retry_delay_ms": "NPX_FINDER_RETRY_DELAY_MS",
            "registry_url": "NPX_FINDER_REGISTRY_URL",
            "web_url": "NPX_FINDER_WEB_URL",
        }

        values = {}
        for field_name, env_name in env_map.items():
            value = os.getenv(env_name)
            if value:
                values[field_name] = value

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
