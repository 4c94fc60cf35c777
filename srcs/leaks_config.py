"""
Configuration module for Leakscope.

Reads CLI defaults from the environment, after loading a .env file from
the current directory if one exists.
"""

import os
from collections.abc import Mapping
from typing import TypedDict, Optional

from dotenv import load_dotenv

from leaks_types import LeakFilter, OutputFormat

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_FORMAT = OutputFormat.RAW
DEFAULT_FILTER = LeakFilter.ALL
DEFAULT_DEVICE = "booted"
DEFAULT_LOG_LEVEL = "WARNING"


class ConfigError(Exception):
    """Raised when an environment variable holds an unsupported value."""

    pass


class LeakscopeConfig(TypedDict):
    """Defaults applied to the command line."""
    output_format: OutputFormat
    leak_filter: LeakFilter
    device_id: str
    test_name: Optional[str]
    log_level: str


def load_config(env: Optional[Mapping[str, str]] = None) -> LeakscopeConfig:
    """
    Build the configuration from environment variables.

    Variables:
        LEAKSCOPE_FORMAT: raw, json or json_pretty
        LEAKSCOPE_FILTER: all, leaks or cycles
        LEAKSCOPE_DEVICE: simulator device id
        LEAKSCOPE_TEST_NAME: test name attached to every record
        LEAKSCOPE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL

    Args:
        env: Mapping to read from. When omitted, .env is loaded and
             os.environ is used.

    Returns:
        Parsed configuration.

    Raises:
        ConfigError: If a variable has an unsupported value.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    output_format = _parse_choice(env, "LEAKSCOPE_FORMAT", OutputFormat, DEFAULT_FORMAT)
    leak_filter = _parse_choice(env, "LEAKSCOPE_FILTER", LeakFilter, DEFAULT_FILTER)

    log_level = env.get("LEAKSCOPE_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(
            f"LEAKSCOPE_LOG_LEVEL={log_level!r} is not supported.\n"
            f"Use one of: {', '.join(LOG_LEVELS)}"
        )

    # Empty values count as unset
    device_id = env.get("LEAKSCOPE_DEVICE", "").strip() or DEFAULT_DEVICE
    test_name = env.get("LEAKSCOPE_TEST_NAME", "").strip() or None

    return {
        "output_format": output_format,
        "leak_filter": leak_filter,
        "device_id": device_id,
        "test_name": test_name,
        "log_level": log_level,
    }


def _parse_choice(env, name, enum_type, default):
    raw_value = env.get(name, "").strip().lower()
    if not raw_value:
        return default

    try:
        return enum_type(raw_value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigError(f"{name}={raw_value!r} is not supported.\nUse one of: {choices}")
