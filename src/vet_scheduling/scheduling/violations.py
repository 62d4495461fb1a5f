"""
Structured booking validation results.

A rejected booking is not an error condition for the engine: every violated
constraint is reported as a ``BookingViolation`` inside a
``ValidationOutcome`` so the caller can surface it per field.
"""

import enum
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import BookingRejectedException


class BookingViolationCode(enum.Enum):
    """Reasons a booking attempt can be rejected."""

    DATE_UNAVAILABLE = "DateUnavailable"
    INSUFFICIENT_NOTICE = "InsufficientNotice"
    OUTSIDE_WORKING_HOURS = "OutsideWorkingHours"
    DURING_LUNCH_BREAK = "DuringLunchBreak"
    SLOT_ALREADY_BOOKED = "SlotAlreadyBooked"
    BUFFER_VIOLATION = "BufferViolation"
    DAILY_LIMIT_EXCEEDED = "DailyLimitExceeded"
    SLOT_COUNT_MISMATCH = "SlotCountMismatch"
    APPOINTMENT_TYPE_NOT_FOUND = "AppointmentTypeNotFound"


@dataclass
class BookingViolation:
    """One violated constraint, addressed to the request field it concerns."""

    code: BookingViolationCode
    field: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "field": self.field,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class DailyLimitCheck:
    """
    Capacity of one appointment type on one date.

    ``available`` is true when the requested number of new appointments
    still fits: ``current_count + requested <= limit``.
    """

    appointment_type: str
    type_id: Optional[uuid.UUID]
    current_count: int
    limit: int
    requested: int = 1

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current_count)

    @property
    def available(self) -> bool:
        return self.remaining >= self.requested

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appointment_type": self.appointment_type,
            "type_id": str(self.type_id) if self.type_id else None,
            "current_count": self.current_count,
            "limit": self.limit,
            "remaining": self.remaining,
            "requested": self.requested,
            "available": self.available,
        }


@dataclass
class ValidationOutcome:
    """Result of validating a booking attempt."""

    violations: List[BookingViolation] = field(default_factory=list)
    limit_checks: List[DailyLimitCheck] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def add(
        self,
        code: BookingViolationCode,
        field_name: str,
        message: str,
        **details: Any,
    ) -> BookingViolation:
        """Record a violation and return it."""
        violation = BookingViolation(code, field_name, message, dict(details))
        self.violations.append(violation)
        return violation

    def extend(self, other: "ValidationOutcome") -> None:
        """Merge another outcome's violations and limit checks into this one."""
        self.violations.extend(other.violations)
        self.limit_checks.extend(other.limit_checks)

    def has(self, code: BookingViolationCode) -> bool:
        """Check whether a violation with ``code`` was recorded."""
        return any(violation.code == code for violation in self.violations)

    @property
    def codes(self) -> List[BookingViolationCode]:
        return [violation.code for violation in self.violations]

    def errors_by_field(self) -> Dict[str, List[str]]:
        """Group violation messages by request field, in the order recorded."""
        errors: Dict[str, List[str]] = {}
        for violation in self.violations:
            errors.setdefault(violation.field, []).append(violation.message)
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "violations": [violation.to_dict() for violation in self.violations],
            "limit_checks": [check.to_dict() for check in self.limit_checks],
        }

    def raise_if_invalid(self, message: str = "Booking rejected") -> None:
        """
        Raise ``BookingRejectedException`` if any constraint was violated.

        For callers that prefer exceptions over inspecting the outcome.
        """
        if not self.is_valid:
            raise BookingRejectedException(self, message)
