"""
Configuration management for stickermock.

This module handles the service endpoint, model selection, timeouts and the
location of the persisted settings file.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from stickermock.logging_config import get_logger
from stickermock.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_IMAGE_MODEL = "gemini-2.0-flash-preview-image-generation"
DEFAULT_GENERATION_TIMEOUT = 180
DEFAULT_SETTINGS_PATH = "~/.stickermock/settings.json"


@dataclass
class Config:
    """Configuration for stickermock."""

    # Environment-provided key; the persisted key lives in CredentialStore (excluded from repr)
    gemini_api_key: str = field(default="", repr=False)
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    image_model: str = DEFAULT_IMAGE_MODEL

    # Timeout for the single generateContent call (seconds)
    generation_timeout: int = DEFAULT_GENERATION_TIMEOUT

    # JSON file holding persisted settings (the API key)
    settings_path: str = DEFAULT_SETTINGS_PATH

    # Debug: log raw API payload/response with image data truncated
    debug_api: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            GEMINI_API_KEY: Fallback API key when none is persisted
            STICKERMOCK_BASE_URL: Optional API base URL
            STICKERMOCK_MODEL: Optional image generation model
            STICKERMOCK_TIMEOUT: Optional request timeout in seconds
            STICKERMOCK_SETTINGS_PATH: Optional settings file path
            STICKERMOCK_DEBUG_API: 1/true/yes to log truncated API traffic

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        raw_timeout = os.getenv("STICKERMOCK_TIMEOUT", "").strip()
        try:
            timeout = int(raw_timeout) if raw_timeout else DEFAULT_GENERATION_TIMEOUT
        except ValueError as e:
            raise ConfigurationError(
                f"STICKERMOCK_TIMEOUT must be an integer, got {raw_timeout!r}."
            ) from e

        debug_api = os.getenv("STICKERMOCK_DEBUG_API", "").strip().lower() in ("1", "true", "yes")

        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_base_url=os.getenv("STICKERMOCK_BASE_URL") or DEFAULT_GEMINI_BASE_URL,
            image_model=os.getenv("STICKERMOCK_MODEL") or DEFAULT_IMAGE_MODEL,
            generation_timeout=timeout,
            settings_path=os.getenv("STICKERMOCK_SETTINGS_PATH") or DEFAULT_SETTINGS_PATH,
            debug_api=debug_api,
        )

    def validate(self) -> None:
        """
        Validate the configuration.

        The API key is not checked here; the remote service is the source of
        truth and a missing key is reported per generation.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config")
        if not self.gemini_base_url:
            raise ConfigurationError("API base URL cannot be empty.")
        if not self.image_model:
            raise ConfigurationError("Image model cannot be empty.")
        if self.generation_timeout <= 0:
            raise ConfigurationError(
                f"generation_timeout must be positive, got {self.generation_timeout}."
            )

    @property
    def endpoint_url(self) -> str:
        """Full generateContent URL for the configured model."""
        return f"{self.gemini_base_url.rstrip('/')}/models/{self.image_model}:generateContent"


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance, creating it from the environment on first use."""
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config
