"""
Custom exceptions for the vet-scheduling package.

This module defines the exception hierarchy and custom exceptions
used throughout the appointment scheduling engine.
"""

from .core_exceptions import (
    BookingRejectedException,
    BusinessRuleException,
    ConfigurationException,
    ConnectionException,
    DatabaseException,
    NotFoundException,
    TransactionException,
    ValidationException,
    VetSchedulingException,
    create_error_response,
    format_validation_errors,
)

__all__ = [
    # Exception classes
    "VetSchedulingException",
    "DatabaseException",
    "ConnectionException",
    "TransactionException",
    "ValidationException",
    "BusinessRuleException",
    "BookingRejectedException",
    "NotFoundException",
    "ConfigurationException",
    # Utility functions
    "format_validation_errors",
    "create_error_response",
]
