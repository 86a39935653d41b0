"""
Baryon Settings
===============

Runtime settings read from the environment (prefix BARYON_) using Pydantic Settings.
Static language and target definitions live in common/*.json instead.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaryonSettings(BaseSettings):
    """Settings for the baryon command line tool."""

    log_level: str = Field(default="WARNING", description="Logging level")
    log_format: str = Field(default="console", description="Log renderer: console or json")
    default_language: str = Field(default="r", description="Backend used when --lang is omitted")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"console", "json"}
        if v.lower() not in allowed:
            raise ValueError(f"Log format must be one of: {allowed}")
        return v.lower()

    @field_validator("default_language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        return v.strip().lower()

    model_config = SettingsConfigDict(case_sensitive=False, env_prefix="BARYON_")


# Global settings instance - created on first use
settings = None


def get_settings() -> BaryonSettings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = BaryonSettings()
    return settings


def reload_settings() -> BaryonSettings:
    """Reload settings from environment."""
    global settings
    settings = BaryonSettings()
    return settings
