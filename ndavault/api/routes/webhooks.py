"""
Stripe Webhook Handler

Receives Stripe events for the subscription lifecycle. The raw body is
passed through untouched so the signature can be verified; an invalid or
missing signature is rejected with 401 before anything is written.
"""

import logging

from fastapi import APIRouter, Request

from ndavault.api.dependencies import WebhookDispatcherDep


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request, dispatcher: WebhookDispatcherDep):
    """
    Handle Stripe webhook events.

    Returns 200 to acknowledge receipt, including for event types we do
    not act on. Store failures surface as 5xx so Stripe retries delivery.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    event = await dispatcher.handle(payload, signature)

    logger.info(f"Webhook event {event.id} ({event.type}) acknowledged")
    return {"received": True}
