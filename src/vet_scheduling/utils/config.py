"""
Configuration management utilities.

This module provides environment variable handling with type conversion,
logging setup, and the scheduling configuration consumed by the slot engine
and booking validator.
"""

import json
import logging
import logging.config
import os
from dataclasses import dataclass, field, replace
from datetime import time
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import ConfigurationException
from .datetime_utils import parse_clock_time


class ConfigError(ConfigurationException):
    """Raised for missing or invalid scheduling and environment settings."""


class EnvironmentConfig:
    """Utility class for handling environment variables with type conversion."""

    @staticmethod
    def _missing(key: str) -> ConfigError:
        return ConfigError(
            f"Required environment variable '{key}' is not set", config_key=key
        )

    @staticmethod
    def get_str(
        key: str, default: Optional[str] = None, required: bool = False
    ) -> Optional[str]:
        """
        Get a string environment variable.

        Args:
            key: Environment variable key
            default: Default value if not found
            required: Whether the variable is required

        Returns:
            String value or default

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key, default)

        if required and value is None:
            raise EnvironmentConfig._missing(key)

        return value

    @staticmethod
    def get_int(
        key: str, default: Optional[int] = None, required: bool = False
    ) -> Optional[int]:
        """
        Get an integer environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise EnvironmentConfig._missing(key)
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be an integer, got: {value}",
                config_key=key,
                config_value=value,
            )

    @staticmethod
    def get_bool(
        key: str, default: Optional[bool] = None, required: bool = False
    ) -> Optional[bool]:
        """Get a boolean environment variable (true/1/yes/on/enabled)."""
        value = os.getenv(key)

        if value is None:
            if required:
                raise EnvironmentConfig._missing(key)
            return default

        return value.lower() in ("true", "1", "yes", "on", "enabled")

    @staticmethod
    def get_json(
        key: str, default: Optional[Dict[str, Any]] = None, required: bool = False
    ) -> Optional[Dict[str, Any]]:
        """
        Get a JSON object environment variable.

        Raises:
            ConfigError: If required variable is missing, invalid JSON, or not
                an object
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise EnvironmentConfig._missing(key)
            return default

        try:
            result = json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Environment variable '{key}' contains invalid JSON: {e}",
                config_key=key,
            )

        if not isinstance(result, dict):
            raise ConfigError(
                f"Environment variable '{key}' must be a JSON object", config_key=key
            )
        return result


class LoggingConfigurator:
    """Sets up logging for services and tools embedding the scheduling engine."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    PACKAGE_LOGGER = "vet_scheduling"

    @staticmethod
    def configure_basic_logging(
        level: str = "INFO",
        format_string: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> None:
        """
        Configure root logging with a single console or file handler.

        Args:
            level: Logging level name
            format_string: Custom format string
            log_file: Append to this file instead of writing to stderr
        """
        options: Dict[str, Any] = {
            "level": level.upper(),
            "format": format_string or LoggingConfigurator.DEFAULT_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }
        if log_file:
            options["filename"] = log_file
            options["filemode"] = "a"

        logging.basicConfig(**options)

    @staticmethod
    def default_config(level: str = "INFO") -> Dict[str, Any]:
        """dictConfig for a console handler with the package logger at ``level``."""
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": LoggingConfigurator.DEFAULT_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stdout",
                }
            },
            "loggers": {
                LoggingConfigurator.PACKAGE_LOGGER: {
                    "level": level.upper(),
                    "handlers": ["console"],
                    "propagate": False,
                },
                "sqlalchemy.engine": {"level": "WARNING"},
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
        }

    @staticmethod
    def configure_structured_logging(
        config_dict: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
        level: str = "INFO",
    ) -> None:
        """
        Configure logging from an ini file, a dictConfig, or the default setup.

        An existing ``config_file`` wins over ``config_dict``; with neither,
        ``default_config(level)`` is applied.
        """
        if config_file and Path(config_file).exists():
            logging.config.fileConfig(config_file, disable_existing_loggers=False)
        elif config_dict:
            logging.config.dictConfig(config_dict)
        else:
            logging.config.dictConfig(LoggingConfigurator.default_config(level))


# Per-type daily caps as deployed at the clinic; "default" applies to any
# type without its own entry.
DEFAULT_DAILY_LIMITS: Dict[str, int] = {
    "Vaccination": 40,
    "Deworming": 40,
    "Check-up": 40,
    "Consultation": 40,
    "Castration": 40,
    "Minor Surgery": 40,
    "default": 40,
}

# Environment variable for each named limit in DEFAULT_DAILY_LIMITS.
DAILY_LIMIT_ENV_VARS: Dict[str, str] = {
    "Vaccination": "APPOINTMENT_LIMIT_VACCINATION",
    "Deworming": "APPOINTMENT_LIMIT_DEWORMING",
    "Check-up": "APPOINTMENT_LIMIT_CHECKUP",
    "Consultation": "APPOINTMENT_LIMIT_CONSULTATION",
    "Castration": "APPOINTMENT_LIMIT_CASTRATION",
    "Minor Surgery": "APPOINTMENT_LIMIT_MINOR_SURGERY",
    "default": "APPOINTMENT_LIMIT_DEFAULT",
}

# REPEATABLE READ is excluded: its snapshot is taken by the day-lock
# statement before the lock is granted, so counts miss concurrent commits.
SUPPORTED_ISOLATION_LEVELS = (
    "SERIALIZABLE",
    "READ COMMITTED",
)


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Clinic scheduling rules used by the slot engine and booking validator.

    Instances are immutable and passed explicitly to the components that
    need them. Use ``from_environment()`` to build one from the deployment's
    environment variables, or ``with_overrides()`` to derive a variant.

    Attributes:
        working_hours_start: First bookable time of day
        working_hours_end: End of the working day (exclusive)
        lunch_break_start: Start of the lunch window (inclusive)
        lunch_break_end: End of the lunch window (exclusive); equal to the
            start for no lunch break
        slot_duration_minutes: Spacing between generated slots
        buffer_time_minutes: Minimum gap between two bookings on the same day
        max_appointments_per_day: Type-agnostic cap used by slot listing
        minimum_notice_hours: Minimum lead time between now and a booking
        daily_limits: Read-only per-type-name caps; must contain ``default``
        timezone: IANA timezone the clinic's dates and times are expressed in
        observe_holidays: Whether the holiday calendar closes the clinic
        booking_isolation_level: Transaction isolation for count-and-insert
    """

    working_hours_start: time = time(9, 0)
    working_hours_end: time = time(16, 30)
    lunch_break_start: time = time(12, 0)
    lunch_break_end: time = time(13, 0)
    slot_duration_minutes: int = 30
    buffer_time_minutes: int = 15
    max_appointments_per_day: int = 10
    minimum_notice_hours: int = 24
    daily_limits: Mapping[str, int] = field(
        default_factory=lambda: dict(DEFAULT_DAILY_LIMITS), hash=False
    )
    timezone: str = "Asia/Manila"
    observe_holidays: bool = True
    booking_isolation_level: str = "SERIALIZABLE"

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "daily_limits", MappingProxyType(dict(self.daily_limits))
        )

        if self.slot_duration_minutes < 1:
            raise ConfigError(
                "slot_duration_minutes must be at least 1",
                config_key="slot_duration_minutes",
                config_value=self.slot_duration_minutes,
            )
        if self.working_hours_start >= self.working_hours_end:
            raise ConfigError(
                "working_hours_start must be before working_hours_end",
                config_key="working_hours_start",
            )
        if self.lunch_break_start > self.lunch_break_end:
            raise ConfigError(
                "lunch_break_start must not be after lunch_break_end",
                config_key="lunch_break_start",
            )
        if self.lunch_break_start < self.lunch_break_end and (
            self.lunch_break_start < self.working_hours_start
            or self.lunch_break_end > self.working_hours_end
        ):
            raise ConfigError(
                "lunch break must fall within working hours",
                config_key="lunch_break_start",
            )
        if self.buffer_time_minutes < 0:
            raise ConfigError(
                "buffer_time_minutes cannot be negative",
                config_key="buffer_time_minutes",
                config_value=self.buffer_time_minutes,
            )
        if self.minimum_notice_hours < 0:
            raise ConfigError(
                "minimum_notice_hours cannot be negative",
                config_key="minimum_notice_hours",
                config_value=self.minimum_notice_hours,
            )
        if self.max_appointments_per_day < 0:
            raise ConfigError(
                "max_appointments_per_day cannot be negative",
                config_key="max_appointments_per_day",
                config_value=self.max_appointments_per_day,
            )
        if "default" not in self.daily_limits:
            raise ConfigError(
                "daily_limits must define a 'default' limit", config_key="daily_limits"
            )
        negative = [name for name, limit in self.daily_limits.items() if limit < 0]
        if negative:
            raise ConfigError(
                f"Daily limits cannot be negative: {', '.join(sorted(negative))}",
                config_key="daily_limits",
            )
        if self.booking_isolation_level not in SUPPORTED_ISOLATION_LEVELS:
            raise ConfigError(
                f"Unsupported isolation level '{self.booking_isolation_level}'. "
                f"Supported: {', '.join(SUPPORTED_ISOLATION_LEVELS)}",
                config_key="booking_isolation_level",
                config_value=self.booking_isolation_level,
            )

    def daily_limit_for(self, type_name: str) -> int:
        """
        Resolve the daily cap for an appointment type name.

        Exact name first, then a case-insensitive match, then ``default``.
        """
        if type_name in self.daily_limits:
            return int(self.daily_limits[type_name])

        folded = type_name.casefold()
        for name, limit in self.daily_limits.items():
            if name.casefold() == folded:
                return int(limit)

        return int(self.daily_limits["default"])

    def with_overrides(self, **changes: Any) -> "SchedulingConfig":
        """Return a copy with the given fields replaced (validated again)."""
        return replace(self, **changes)

    @classmethod
    def from_environment(cls) -> "SchedulingConfig":
        """
        Build the configuration from ``APPOINTMENT_*`` environment variables.

        Raises:
            ConfigError: If any variable is malformed or the result is invalid
        """
        daily_limits = dict(DEFAULT_DAILY_LIMITS)
        for name, env_var in DAILY_LIMIT_ENV_VARS.items():
            daily_limits[name] = EnvironmentConfig.get_int(env_var, daily_limits[name])

        extra_limits = EnvironmentConfig.get_json("APPOINTMENT_DAILY_LIMITS", {})
        for name, limit in extra_limits.items():
            try:
                daily_limits[name] = int(limit)
            except (TypeError, ValueError):
                raise ConfigError(
                    f"Daily limit for '{name}' must be an integer, got: {limit}",
                    config_key="APPOINTMENT_DAILY_LIMITS",
                    config_value=limit,
                )

        return cls(
            working_hours_start=_env_time("APPOINTMENT_WORKING_HOURS_START", "09:00"),
            working_hours_end=_env_time("APPOINTMENT_WORKING_HOURS_END", "16:30"),
            lunch_break_start=_env_time("APPOINTMENT_LUNCH_BREAK_START", "12:00"),
            lunch_break_end=_env_time("APPOINTMENT_LUNCH_BREAK_END", "13:00"),
            slot_duration_minutes=EnvironmentConfig.get_int(
                "APPOINTMENT_SLOT_DURATION", 30
            ),
            buffer_time_minutes=EnvironmentConfig.get_int("APPOINTMENT_BUFFER_TIME", 15),
            max_appointments_per_day=EnvironmentConfig.get_int(
                "APPOINTMENT_MAX_PER_DAY", 10
            ),
            minimum_notice_hours=EnvironmentConfig.get_int(
                "APPOINTMENT_MINIMUM_NOTICE", 24
            ),
            daily_limits=daily_limits,
            timezone=EnvironmentConfig.get_str("APPOINTMENT_TIMEZONE", "Asia/Manila"),
            observe_holidays=EnvironmentConfig.get_bool(
                "APPOINTMENT_OBSERVE_HOLIDAYS", True
            ),
            booking_isolation_level=EnvironmentConfig.get_str(
                "APPOINTMENT_BOOKING_ISOLATION", "SERIALIZABLE"
            ).upper(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the configuration with times in 24-hour ``HH:MM`` form."""
        return {
            "working_hours_start": self.working_hours_start.strftime("%H:%M"),
            "working_hours_end": self.working_hours_end.strftime("%H:%M"),
            "lunch_break_start": self.lunch_break_start.strftime("%H:%M"),
            "lunch_break_end": self.lunch_break_end.strftime("%H:%M"),
            "slot_duration_minutes": self.slot_duration_minutes,
            "buffer_time_minutes": self.buffer_time_minutes,
            "max_appointments_per_day": self.max_appointments_per_day,
            "minimum_notice_hours": self.minimum_notice_hours,
            "daily_limits": dict(self.daily_limits),
            "timezone": self.timezone,
            "observe_holidays": self.observe_holidays,
            "booking_isolation_level": self.booking_isolation_level,
        }


def _env_time(key: str, default: str) -> time:
    value = EnvironmentConfig.get_str(key, default)
    try:
        return parse_clock_time(value)
    except ValueError:
        raise ConfigError(
            f"Environment variable '{key}' must be a time like 09:00, got: {value}",
            config_key=key,
            config_value=value,
        )


def list_configured_types(config: SchedulingConfig) -> List[str]:
    """Names with an explicit daily limit, excluding the ``default`` key."""
    return [name for name in config.daily_limits if name != "default"]
