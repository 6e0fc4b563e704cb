"""
Payments Infrastructure Module

Payment-provider protocol and its Stripe implementation.
"""

from ndavault.infrastructure.payments.provider import (
    PaymentProvider,
    ProviderCustomer,
    ProviderSubscription,
    VerifiedEvent,
)
from ndavault.infrastructure.payments.stripe_provider import StripePaymentProvider

__all__ = [
    "PaymentProvider",
    "ProviderCustomer",
    "ProviderSubscription",
    "VerifiedEvent",
    "StripePaymentProvider",
]
