# API Routes Module
from ndavault.api.routes import (
    agreements,
    alerts,
    subscriptions,
    webhooks,
)

__all__ = [
    "agreements",
    "alerts",
    "subscriptions",
    "webhooks",
]
