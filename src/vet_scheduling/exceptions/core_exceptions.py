"""
Core exceptions for the vet-scheduling package.

Everything the package raises derives from ``VetSchedulingException``.
Booking-constraint violations are not raised by the validator itself; they
are returned as a ``ValidationOutcome`` and only turned into a
``BookingRejectedException`` when a caller asks for it.
"""

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib.parse import urlparse, urlunparse

if TYPE_CHECKING:
    from ..scheduling.violations import ValidationOutcome

SENSITIVE_CONFIG_MARKERS = ("password", "secret", "token", "credential", "url")


class VetSchedulingException(Exception):
    """
    Base exception class for all vet-scheduling exceptions.

    Carries a machine-readable ``error_code`` and a ``details`` dictionary
    that ends up in error responses and structured log records.
    """

    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the exception, stamped with the time of the call."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": time.time(),
        }

    def log_error(
        self, logger: Optional[logging.Logger] = None, level: int = logging.ERROR
    ) -> None:
        """
        Log the exception with its code and details attached as ``exception_data``.

        Args:
            logger: Logger instance to use (module logger if None)
            level: Logging level to use
        """
        logger = logger or logging.getLogger(__name__)
        data = self.to_dict()
        data.pop("timestamp")
        logger.log(
            level,
            f"{self.error_code}: {self.message}",
            extra={"exception_data": data},
        )

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class DatabaseException(VetSchedulingException):
    """A database operation failed, possibly after several attempts."""

    default_code = "DATABASE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
        retry_count: int = 0,
    ):
        """
        Initialize database exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
            original_error: Driver or SQLAlchemy error that caused this one
            retry_count: Retries made before giving up
        """
        super().__init__(message, error_code, details)
        self.original_error = original_error
        self.retry_count = retry_count

        if original_error is not None:
            self.details.setdefault("original_error", str(original_error))
            sqlstate = self.sqlstate_of(original_error)
            if sqlstate:
                self.details["sqlstate"] = sqlstate
        self.details["attempts"] = retry_count + 1

    @property
    def sqlstate(self) -> Optional[str]:
        return self.details.get("sqlstate")

    @staticmethod
    def sqlstate_of(error: BaseException) -> Optional[str]:
        """
        SQLSTATE reported by the driver behind a SQLAlchemy error, if any.

        asyncpg exposes ``sqlstate``; psycopg exposes ``pgcode``.
        """
        orig = getattr(error, "orig", None)
        if orig is None:
            return None
        return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class ConnectionException(DatabaseException):
    """The database could not be reached."""

    default_code = "DATABASE_CONNECTION_ERROR"

    def __init__(
        self,
        message: str = "Database connection failed",
        database_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        retry_count: int = 0,
    ):
        details = {}
        if database_url:
            details["database_url"] = self._sanitize_url(database_url)

        super().__init__(
            message,
            details=details,
            original_error=original_error,
            retry_count=retry_count,
        )

    @staticmethod
    def _sanitize_url(url: str) -> str:
        """Drop user and password from a database URL."""
        try:
            parsed = urlparse(url)
            netloc = parsed.hostname or ""
            if parsed.port:
                netloc = f"{netloc}:{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
        except (ValueError, AttributeError) as e:
            return f"[URL_PARSE_ERROR: {e}]"


class TransactionException(DatabaseException):
    """A transaction failed and was rolled back."""

    default_code = "DATABASE_TRANSACTION_ERROR"

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            details={"operation": operation} if operation else None,
            original_error=original_error,
        )


class ValidationException(VetSchedulingException):
    """Input data failed validation."""

    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        validation_errors: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        """
        Initialize validation exception.

        Args:
            message: Error message
            field: Field that failed validation
            value: Offending value (stored as a string)
            validation_errors: Messages keyed by field
            error_code: Overrides the class's default code
        """
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if validation_errors:
            details["validation_errors"] = validation_errors

        super().__init__(message, error_code, details)


class BusinessRuleException(ValidationException):
    """
    A scheduling rule refused the operation.

    ``rule_name`` identifies the rule, e.g. ``appointment_approve`` or
    ``disable_past_date``.
    """

    default_code = "BUSINESS_RULE_ERROR"

    def __init__(
        self,
        message: str = "Business rule validation failed",
        rule_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        validation_errors: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, validation_errors=validation_errors)
        self.rule_name = rule_name
        if rule_name:
            self.details["rule_name"] = rule_name
        if context:
            self.details["context"] = context


class BookingRejectedException(BusinessRuleException):
    """Raised on request when a booking attempt fails one or more constraints."""

    default_code = "BOOKING_REJECTED"

    def __init__(
        self,
        outcome: "ValidationOutcome",
        message: str = "Booking rejected",
    ):
        super().__init__(
            message,
            rule_name="booking_constraints",
            context={"violations": [v.to_dict() for v in outcome.violations]},
            validation_errors=outcome.errors_by_field(),
        )
        self.outcome = outcome


class NotFoundException(VetSchedulingException):
    """A referenced appointment, type or disabled date does not exist."""

    default_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found",
            details={"resource": resource, "identifier": str(identifier)},
        )


class ConfigurationException(VetSchedulingException):
    """
    Clinic or database configuration is missing or invalid.

    Values of keys that look like credentials or connection strings are
    redacted from the details.
    """

    default_code = "CONFIGURATION_ERROR"

    def __init__(
        self,
        message: str = "Configuration error",
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
    ):
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = self._sanitize_config_value(
                config_key, config_value
            )
        super().__init__(message, details=details)
        self.config_key = config_key

    @staticmethod
    def _sanitize_config_value(key: Optional[str], value: Any) -> str:
        if not key:
            return "[REDACTED]"
        if any(marker in key.lower() for marker in SENSITIVE_CONFIG_MARKERS):
            return "[REDACTED]"
        return str(value)


def format_validation_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Group Pydantic validation errors by dotted field path.

    Args:
        errors: ``ValidationError.errors()`` output

    Returns:
        Dictionary mapping field paths to lists of messages
    """
    formatted: Dict[str, List[str]] = {}

    for error in errors:
        field_path = ".".join(str(loc) for loc in error.get("loc", ())) or "root"
        message = error.get("msg", "Validation error")
        error_type = error.get("type", "unknown")

        if error_type == "missing":
            message = "This field is required"
        elif error_type != "value_error":
            message = f"{message} (type: {error_type})"

        formatted.setdefault(field_path, []).append(message)

    return formatted


def create_error_response(exception: VetSchedulingException) -> Dict[str, Any]:
    """Build the ``{"success": False, "error": {...}}`` response body."""
    error: Dict[str, Any] = {
        "type": exception.__class__.__name__,
        "code": exception.error_code,
        "message": exception.message,
    }
    if exception.details:
        error["details"] = exception.details
    return {"success": False, "error": error}
