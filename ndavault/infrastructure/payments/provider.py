"""
Payment provider protocol.

Defines the interface the subscription services need from a billing
provider, and the provider-neutral shapes it returns. Implementations
raise PaymentProviderError for any failed call and UnauthorizedError for a
webhook whose signature does not verify.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol


@dataclass
class ProviderCustomer:
    id: str
    email: Optional[str] = None


@dataclass
class ProviderSubscription:
    """A provider subscription, reduced to what the local record stores."""
    id: str
    status: Optional[str]
    customer_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    amount: Optional[int] = None  # smallest currency unit
    client_secret: Optional[str] = None
    requires_action: bool = False


@dataclass
class VerifiedEvent:
    """A webhook event whose signature has been checked."""
    id: Optional[str]
    type: str
    data: Dict[str, Any] = field(default_factory=dict)


class PaymentProvider(Protocol):
    """
    Protocol for payment providers.

    One instance is constructed at startup and injected into the services
    that need it.
    """

    async def create_customer(
        self,
        user_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ProviderCustomer:
        ...

    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        payment_method_id: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ProviderSubscription:
        ...

    async def retrieve_subscription(self, subscription_id: str) -> ProviderSubscription:
        ...

    async def cancel_subscription(self, subscription_id: str) -> ProviderSubscription:
        ...

    def verify_webhook(self, payload: bytes, signature: str) -> VerifiedEvent:
        ...


# =============================================================================
# Payload normalization
# =============================================================================

def _field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a key from a dict or StripeObject without assuming it exists."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def _first_item(obj: Any) -> Any:
    items = _field(_field(obj, "items"), "data") or []
    return items[0] if len(items) else None


def _to_datetime(value: Any) -> Optional[datetime]:
    """Accept epoch seconds (Stripe) or ISO-8601 strings."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _id_of(value: Any) -> Optional[str]:
    """Expanded objects carry their id under 'id'; collapsed ones are the id."""
    if value is None or isinstance(value, str):
        return value
    return _field(value, "id")


def subscription_from_payload(obj: Any) -> ProviderSubscription:
    """
    Build a ProviderSubscription from a provider subscription object.

    Newer Stripe API versions moved billing periods onto the subscription
    items and the price amount under items.data[0].price, so both places
    are read.
    """
    item = _first_item(obj)

    amount = _field(obj, "amount")
    if amount is None:
        amount = _field(_field(obj, "plan"), "amount")
    if amount is None:
        amount = _field(_field(item, "price"), "unit_amount")
    if amount is None:
        amount = _field(_field(obj, "price"), "amount")

    start = _field(obj, "current_period_start", _field(item, "current_period_start"))
    end = _field(obj, "current_period_end", _field(item, "current_period_end"))

    invoice = _field(obj, "latest_invoice")
    intent = _field(invoice, "payment_intent")
    client_secret = (
        _field(intent, "client_secret")
        or _field(_field(invoice, "confirmation_secret"), "client_secret")
    )
    status = _field(obj, "status")
    requires_action = status == "incomplete" or _field(intent, "status") in (
        "requires_action",
        "requires_confirmation",
        "requires_payment_method",
    )

    return ProviderSubscription(
        id=_id_of(_field(obj, "id")),
        status=status,
        customer_id=_id_of(_field(obj, "customer", _field(obj, "customer_id"))),
        current_period_start=_to_datetime(start),
        current_period_end=_to_datetime(end),
        amount=int(amount) if amount is not None else None,
        client_secret=client_secret if isinstance(client_secret, str) else None,
        requires_action=bool(requires_action),
    )


def invoice_subscription_ref(obj: Any) -> Optional[str]:
    """The subscription id an invoice belongs to, if it references one."""
    ref = _field(obj, "subscription", _field(obj, "subscription_id"))
    if ref is None:
        details = _field(_field(obj, "parent"), "subscription_details")
        ref = _field(details, "subscription")
    return _id_of(ref)
