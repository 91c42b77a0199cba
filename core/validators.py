"""Configuration loading and validation for the HTTP bridge.

Configuration is resolved once per process (environment JSON first, then
config.yaml, then defaults) and is immutable afterwards.
"""

import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HTTP_BRIDGE_CONFIG"
MODE_ENV_VAR = "HTTP_BRIDGE_MODE"
DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_MODE = "production"

# Content types Architect transports base64-encoded
BINARY_TYPES: Tuple[str, ...] = (
    "application/octet-stream",
    # Docs
    "application/epub+zip",
    "application/msword",
    "application/pdf",
    "application/rtf",
    "application/vnd.amazon.ebook",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    # Fonts
    "font/otf",
    "font/woff",
    "font/woff2",
    # Images
    "image/bmp",
    "image/gif",
    "image/jpeg",
    "image/png",
    "image/tiff",
    "image/vnd.microsoft.icon",
    "image/webp",
    # Audio
    "audio/3gpp",
    "audio/aac",
    "audio/basic",
    "audio/mpeg",
    "audio/ogg",
    "audio/wav",
    "audio/webm",
    "audio/x-aiff",
    "audio/x-midi",
    "audio/x-wav",
    # Video
    "video/3gpp",
    "video/mp2t",
    "video/mpeg",
    "video/ogg",
    "video/quicktime",
    "video/webm",
    "video/x-msvideo",
    # Archives
    "application/java-archive",
    "application/vnd.apple.installer+xml",
    "application/x-7z-compressed",
    "application/x-apple-diskimage",
    "application/x-bzip",
    "application/x-bzip2",
    "application/x-gzip",
    "application/x-java-archive",
    "application/x-rar-compressed",
    "application/x-tar",
    "application/x-zip",
    "application/zip",
)


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


def _default_mode() -> str:
    return os.environ.get(MODE_ENV_VAR) or DEFAULT_MODE


class LoggingConfig(BaseModel):
    """Logging section of the configuration."""

    level: str = Field(default="INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    class Config:
        extra = "forbid"
        frozen = True


class AdapterConfig(BaseModel):
    """Process-wide adapter configuration.

    Built once at cold start and passed by reference into the adapter.
    """

    mode: str = Field(
        default_factory=_default_mode,
        description="Execution mode handed to the framework handler",
    )
    binary_types: Tuple[str, ...] = Field(
        default=BINARY_TYPES,
        description="Content types whose bodies are returned base64-encoded",
    )
    abort_margin_ms: int = Field(
        default=0,
        ge=0,
        description="Abort the signal this many ms before the platform deadline (0 disables)",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("binary_types")
    @classmethod
    def validate_binary_types(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Reject blank entries and normalise case."""
        normalised = []
        for content_type in v:
            content_type = content_type.strip().lower()
            if not content_type:
                raise ValueError("binary_types entries cannot be empty")
            normalised.append(content_type)
        return tuple(normalised)

    class Config:
        extra = "forbid"
        frozen = True


def validate_config(raw: Optional[Dict[str, Any]]) -> AdapterConfig:
    """Validate a raw configuration mapping.

    Args:
        raw: Parsed configuration dictionary (None means defaults)

    Returns:
        Validated AdapterConfig

    Raises:
        ConfigurationError: If validation fails
    """
    if raw is None:
        raw = {}

    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration must be a dictionary")

    try:
        return AdapterConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_and_validate_config(config_path: str = DEFAULT_CONFIG_PATH) -> AdapterConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to config.yaml file

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the YAML or its contents are invalid
        FileNotFoundError: If config file doesn't exist
    """
    try:
        with open(config_path, "r") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    return validate_config(raw)


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> AdapterConfig:
    """Resolve the process configuration.

    Order: HTTP_BRIDGE_CONFIG (JSON), then config_path (YAML), then defaults.

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If a configuration source exists but is invalid
    """
    config_json = os.environ.get(CONFIG_ENV_VAR)
    if config_json:
        try:
            raw = json.loads(config_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {CONFIG_ENV_VAR}: {e}") from e
        logger.info("Loaded configuration from environment variable")
        return validate_config(raw)

    try:
        config = load_and_validate_config(config_path)
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except FileNotFoundError:
        logger.info("No configuration found, using defaults")
        return AdapterConfig()


def get_logging_config(config: AdapterConfig) -> Dict[str, Any]:
    """Get the logging section as a plain dictionary.

    Args:
        config: Validated configuration

    Returns:
        Logging configuration dictionary
    """
    return config.logging.model_dump()
