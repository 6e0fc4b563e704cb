"""Application services orchestrating repositories and the payment provider."""

from ndavault.infrastructure.services.alert_job import AlertBatchJob
from ndavault.infrastructure.services.subscription_service import (
    CreatedSubscription,
    SubscriptionService,
)
from ndavault.infrastructure.services.webhook_dispatcher import (
    WebhookDispatcher,
    WebhookEventType,
)

__all__ = [
    "AlertBatchJob",
    "CreatedSubscription",
    "SubscriptionService",
    "WebhookDispatcher",
    "WebhookEventType",
]
