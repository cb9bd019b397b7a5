"""
Configuration for the MediPattern services.

Settings are read from Streamlit secrets (`.streamlit/secrets.toml`) first, the
same place the Gemini API key has always lived, then from environment
variables, and finally fall back to the defaults declared on `Settings`.
"""
# medipattern/config.py

import logging
import os
from typing import Any, Optional

import streamlit as st
from pydantic import BaseModel, Field

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ENV_PREFIX = "MEDIPATTERN_"


class Settings(BaseModel):
    """Runtime settings with validated defaults."""

    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    model_name: str = Field(default="gemini-2.5-flash", description="Model used for every request")

    extraction_timeout: float = Field(default=15.0, gt=0.0, description="Seconds to wait for metric extraction")
    insight_timeout: float = Field(default=15.0, gt=0.0, description="Seconds to wait for a trend insight")
    report_timeout: float = Field(default=25.0, gt=0.0, description="Seconds to wait for a clinician report")
    insight_window: int = Field(default=7, gt=0, description="Number of newest entries sent for trend analysis")

    data_file: str = Field(default="records.json", description="Encrypted journal data file")
    key_file: str = Field(default="secret.key", description="Fernet key file")
    log_level: str = Field(default="INFO")


def _read_secret(name: str) -> Any:
    """Reads a value from Streamlit secrets, returning None when no secrets file exists."""
    try:
        return st.secrets.get(name)
    except FileNotFoundError:
        return None


def _lookup(field_name: str) -> Any:
    env_name = "GEMINI_API_KEY" if field_name == "gemini_api_key" else ENV_PREFIX + field_name.upper()
    value = _read_secret(env_name)
    if value is None:
        value = os.environ.get(env_name)
    return value


def load_settings(**overrides) -> Settings:
    """Builds the settings from secrets, environment and explicit overrides.

    Args:
        **overrides: Values that take precedence over every other source.

    Returns:
        Settings: The validated settings.
    """
    values = {}
    for field_name in Settings.model_fields:
        value = _lookup(field_name)
        if value is not None:
            values[field_name] = value
    values.update(overrides)
    return Settings(**values)


def configure_logging(level: str = "INFO") -> None:
    """Sets up the root logger once with the application's log format."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
