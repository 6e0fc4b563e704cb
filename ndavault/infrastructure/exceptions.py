"""
Custom Exceptions for NDAVault

Hierarchical exception classes for proper error handling across layers.
HTTP status mapping lives in ndavault.main.
"""

from typing import Optional, Dict, Any


class NDAVaultError(Exception):
    """Base exception for all NDAVault errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(NDAVaultError):
    """Raised when input validation fails."""
    pass


class InvalidPlanError(ValidationError):
    """Raised when a plan id or price id does not match the catalog."""

    def __init__(self, plan_ref: str, original_error: Optional[Exception] = None):
        super().__init__(
            f"Unknown or non-purchasable plan: {plan_ref}",
            details={"plan": plan_ref},
            original_error=original_error,
        )


class UnauthorizedError(NDAVaultError):
    """Raised when caller identity or a webhook signature cannot be verified."""
    pass


class EntitlementError(NDAVaultError):
    """Raised when the caller's plan does not allow the requested action."""
    pass


class UploadLimitExceededError(EntitlementError):
    """Raised when a user has reached the agreement limit of their plan."""

    def __init__(self, limit: int, current_count: int):
        super().__init__(
            f"Plan limit reached: {current_count} of {limit} agreements used",
            details={"limit": limit, "current_count": current_count},
        )


class FeatureNotAvailableError(EntitlementError):
    """Raised when a paid feature is used without an active paid plan."""

    def __init__(self, feature: str):
        super().__init__(
            f"Feature '{feature}' requires an active Pro subscription",
            details={"feature": feature},
        )


class DatabaseError(NDAVaultError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class NoActiveSubscriptionError(NotFoundError):
    """Raised when an action needs a provider-side subscription and there is none."""

    def __init__(self, user_id: str):
        super().__init__(
            "No active subscription found",
            operation="cancel",
            table="subscriptions",
        )
        self.user_id = user_id


class PaymentProviderError(NDAVaultError):
    """
    Raised when a payment-provider call fails.

    The message returned to clients is generic; provider detail is kept in
    ``details`` and ``original_error`` for server-side logging only.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": "Payment provider request failed",
            "details": {},
        }


class ConfigurationError(NDAVaultError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
