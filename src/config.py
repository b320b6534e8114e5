"""
Configuration management using Pydantic for the image tools library.
Provides type-safe configuration with validation and environment variable support.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.constants import ImageConstants, SystemConstants

logger = logging.getLogger(__name__)


class ImageConfig(BaseSettings):
    """Image processing and encoding configuration."""

    default_dpi: float = Field(
        default=ImageConstants.DEFAULT_DPI,
        gt=0,
        description="DPI reported for frames without resolution metadata",
    )
    default_compression: Optional[float] = Field(
        default=None,
        ge=ImageConstants.MIN_COMPRESSION,
        le=ImageConstants.MAX_COMPRESSION,
        description="Compression used when none is given (None = format default)",
    )
    interpolation: str = Field(
        default="linear", description="Resampling used when drawing images (linear, cubic, nearest)"
    )
    thumbnail_max_size: int = Field(
        default=ImageConstants.DEFAULT_THUMBNAIL_MAX_SIZE,
        ge=1,
        le=ImageConstants.MAX_CONTEXT_DIMENSION,
        description="Default longest side for frame thumbnails",
    )
    gif_minimum_delay: float = Field(
        default=ImageConstants.GIF_MINIMUM_DELAY,
        ge=0.0,
        le=10.0,
        description="Lower bound applied to GIF frame delays in seconds",
    )

    @field_validator("interpolation")
    @classmethod
    def validate_interpolation(cls, v):
        """Validate interpolation name."""
        valid = ["linear", "cubic", "nearest"]
        v_lower = v.lower()
        if v_lower not in valid:
            raise ValueError(f"Invalid interpolation: {v}. Must be one of {valid}")
        return v_lower

    model_config = SettingsConfigDict(env_prefix="IMGTOOLS_IMAGE_", extra="ignore")


class ThumbnailConfig(BaseSettings):
    """File thumbnail generation configuration."""

    worker_threads: int = Field(
        default=ImageConstants.THUMBNAIL_WORKER_THREADS,
        ge=1,
        le=16,
        description="Number of thumbnail worker threads",
    )
    default_size: int = Field(
        default=ImageConstants.DEFAULT_THUMBNAIL_MAX_SIZE,
        ge=1,
        le=4096,
        description="Default thumbnail size in points",
    )

    model_config = SettingsConfigDict(env_prefix="IMGTOOLS_THUMBNAIL_", extra="ignore")


class SystemConfig(BaseSettings):
    """System configuration."""

    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default=SystemConstants.LOG_LEVEL_DEFAULT, description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Log file path")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    model_config = SettingsConfigDict(env_prefix="IMGTOOLS_SYSTEM_", extra="ignore")


class Settings(BaseSettings):
    """Main library settings."""

    # Sub-configurations
    image: ImageConfig = Field(default_factory=ImageConfig)
    thumbnail: ThumbnailConfig = Field(default_factory=ThumbnailConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    # Config file support
    config_file: Optional[str] = Field(default=None, description="Path to YAML config file")

    @model_validator(mode="before")
    @classmethod
    def load_config_file(cls, values):
        """Load configuration from YAML file if specified."""
        if not isinstance(values, dict):
            return values

        config_file = values.get("config_file") or os.getenv("IMGTOOLS_CONFIG_FILE")

        if config_file and Path(config_file).exists():
            try:
                with open(config_file, "r") as f:
                    file_config = yaml.safe_load(f)
                    if file_config:
                        # Merge file config with values (explicit values take precedence)
                        for key, value in file_config.items():
                            if key not in values or values[key] is None:
                                values[key] = value
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config file {config_file}: {e}")

        return values

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return self.model_dump(exclude_none=True)

    def save_to_file(self, path: str) -> None:
        """Save current configuration to YAML file."""
        config_dict = self.to_dict()
        with open(path, "w") as f:
            yaml.dump(config_dict, f, default_flow_style=False)

    model_config = SettingsConfigDict(
        env_prefix="IMGTOOLS_",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings object with validated configuration
    """
    return Settings()


# Convenience function to reload settings (clears cache)
def reload_settings() -> Settings:
    """
    Reload settings, clearing the cache.

    Returns:
        Fresh Settings object
    """
    get_settings.cache_clear()
    return get_settings()
