"""
sessionhooks Domain-Specific Exceptions
========================================

This module defines a hierarchy of exceptions for consistent error handling
across the event dispatch and webhook delivery pipeline.

Exception Hierarchy:
    SessionHooksError (base)
    ├── RecoverableError (transient, retry possible)
    │   └── StoreUnavailableError
    └── IrrecoverableError (permanent, requires intervention)
        ├── ConfigurationError
        ├── ValidationError
        │   └── InvalidEventTypeError
        ├── NotFoundError
        │   └── WebhookNotFoundError
        ├── PayloadConversionError
        └── ManagerNotStartedError

Usage Guidelines:
    - Return None for "not found" lookups inside the store (expected case)
    - Raise for caller-initiated operations that must surface failure
      (start, stop, test_webhook, payload conversion)
    - Never raise delivery failures back into the passive dispatch path
    - Always include context in error messages
"""

from typing import Optional, Any
from enum import Enum


class ErrorCategory(Enum):
    """Categories for error classification."""
    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    DISPATCH = "DISPATCH"
    STORE = "STORE"
    SYSTEM = "SYSTEM"


class SessionHooksError(Exception):
    """
    Base exception for all sessionhooks errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        context: Additional context about the error
        recoverable: Whether the error is potentially recoverable
    """

    error_code: str = "SESSIONHOOKS_ERROR"
    recoverable: bool = True
    category: ErrorCategory = ErrorCategory.SYSTEM

    def __init__(
        self,
        message: str,
        context: Optional[dict] = None,
        error_code: Optional[str] = None,
        recoverable: Optional[bool] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        if error_code is not None:
            self.error_code = error_code
        if recoverable is not None:
            self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON responses."""
        result = {
            "error": self.message,
            "code": self.error_code,
            "recoverable": self.recoverable,
        }
        if self.context:
            result["context"] = self.context
        return result


# =============================================================================
# Base Categories: Recoverable vs Irrecoverable
# =============================================================================

class RecoverableError(SessionHooksError):
    """
    Base class for recoverable errors.

    These are transient errors that may succeed on retry:
    - Subscription store temporarily unreachable
    - Connection refused / timeout / 5xx from a webhook endpoint
    """
    recoverable = True


class IrrecoverableError(SessionHooksError):
    """
    Base class for irrecoverable errors.

    These are permanent errors that require intervention:
    - Invalid configuration
    - Malformed event payloads
    - Unknown resources
    """
    recoverable = False


# =============================================================================
# Store Errors
# =============================================================================

class StoreUnavailableError(RecoverableError):
    """Raised when the webhook config store cannot serve a lookup."""
    error_code = "STORE_UNAVAILABLE_ERROR"
    category = ErrorCategory.STORE

    def __init__(self, operation: str, reason: str, context: Optional[dict] = None):
        ctx = {"operation": operation}
        if context:
            ctx.update(context)
        super().__init__(f"Webhook store '{operation}' failed: {reason}", ctx)
        self.operation = operation


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(IrrecoverableError):
    """Raised when configuration is invalid or missing."""
    error_code = "CONFIGURATION_ERROR"
    category = ErrorCategory.CONFIG

    def __init__(self, config_key: str, reason: str, context: Optional[dict] = None):
        ctx = {"config_key": config_key}
        if context:
            ctx.update(context)
        super().__init__(f"Configuration error for '{config_key}': {reason}", ctx)
        self.config_key = config_key


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(IrrecoverableError):
    """Raised when input validation fails."""
    error_code = "VALIDATION_ERROR"
    category = ErrorCategory.VALIDATION

    def __init__(self, field: str, reason: str, value: Any = None, context: Optional[dict] = None):
        ctx = {"field": field}
        if value is not None:
            # Truncate large values
            value_str = str(value)
            if len(value_str) > 100:
                value_str = value_str[:100] + "..."
            ctx["value"] = value_str
        if context:
            ctx.update(context)
        super().__init__(f"Validation error for '{field}': {reason}", ctx)
        self.field = field
        self.reason = reason


class InvalidEventTypeError(ValidationError):
    """Raised when an explicit operation names an event type outside the registry."""
    error_code = "INVALID_EVENT_TYPE_ERROR"

    def __init__(self, event_type: str, context: Optional[dict] = None):
        super().__init__("event_type", "unsupported event type", event_type, context)
        self.event_type = event_type


# =============================================================================
# Not Found Errors
# =============================================================================

class NotFoundError(IrrecoverableError):
    """Raised when a requested resource is not found."""
    error_code = "NOT_FOUND_ERROR"
    category = ErrorCategory.SYSTEM

    def __init__(self, resource_type: str, resource_id: str, context: Optional[dict] = None):
        ctx = {"resource_type": resource_type, "resource_id": resource_id}
        if context:
            ctx.update(context)
        super().__init__(f"{resource_type} '{resource_id}' not found", ctx)
        self.resource_type = resource_type
        self.resource_id = resource_id


class WebhookNotFoundError(NotFoundError):
    """Raised when a webhook config id is unknown to the store."""
    error_code = "WEBHOOK_NOT_FOUND_ERROR"
    category = ErrorCategory.STORE

    def __init__(self, webhook_id: str, context: Optional[dict] = None):
        super().__init__("Webhook", webhook_id, context)
        self.webhook_id = webhook_id


# =============================================================================
# Dispatch Errors
# =============================================================================

class PayloadConversionError(IrrecoverableError):
    """Raised when a raw provider event cannot be turned into a JSON object."""
    error_code = "PAYLOAD_CONVERSION_ERROR"
    category = ErrorCategory.DISPATCH

    def __init__(self, event_type: str, reason: str, context: Optional[dict] = None):
        ctx = {"event_type": event_type}
        if context:
            ctx.update(context)
        super().__init__(f"Failed to convert '{event_type}' event payload: {reason}", ctx)
        self.event_type = event_type


class ManagerNotStartedError(IrrecoverableError):
    """Raised by explicit operations when the webhook manager is not running."""
    error_code = "MANAGER_NOT_STARTED_ERROR"
    category = ErrorCategory.SYSTEM

    def __init__(self, operation: str, context: Optional[dict] = None):
        ctx = {"operation": operation}
        if context:
            ctx.update(context)
        super().__init__(f"Webhook manager is not started (operation '{operation}')", ctx)
        self.operation = operation


__all__ = [
    "ErrorCategory",
    "SessionHooksError",
    "RecoverableError",
    "IrrecoverableError",
    "StoreUnavailableError",
    "ConfigurationError",
    "ValidationError",
    "InvalidEventTypeError",
    "NotFoundError",
    "WebhookNotFoundError",
    "PayloadConversionError",
    "ManagerNotStartedError",
]
