"""
Utility functions and helper modules.

This module provides datetime handling, the clinic holiday calendar and
configuration management shared by the scheduling engine.
"""

from .datetime_utils import (
    add_minutes,
    calculate_easter,
    ensure_aware,
    format_12_hour,
    format_24_hour,
    get_clinic_holidays,
    get_current_local,
    get_holidays_for_range,
    is_holiday,
    localize,
    minute_difference,
    minutes_since_midnight,
    parse_clock_time,
)

from .config import (
    ConfigError,
    EnvironmentConfig,
    LoggingConfigurator,
    SchedulingConfig,
    DEFAULT_DAILY_LIMITS,
    list_configured_types,
)

__all__ = [
    # DateTime utilities
    "add_minutes",
    "calculate_easter",
    "ensure_aware",
    "format_12_hour",
    "format_24_hour",
    "get_clinic_holidays",
    "get_current_local",
    "get_holidays_for_range",
    "is_holiday",
    "localize",
    "minute_difference",
    "minutes_since_midnight",
    "parse_clock_time",
    # Configuration utilities
    "ConfigError",
    "EnvironmentConfig",
    "LoggingConfigurator",
    "SchedulingConfig",
    "DEFAULT_DAILY_LIMITS",
    "list_configured_types",
]
