"""
Stripe Webhook Signal Handlers for Course Settlement
====================================================

This module processes verified Stripe events that dj-stripe has already
validated and stored. We do not parse webhooks ourselves. Instead, we react
to persisted `djstripe.models.Event` rows using Django's `post_save` signal,
which is stable across dj-stripe versions.

Handled event types (see `elearning.payments.intake.HANDLED_EVENTS`):
- `checkout.session.completed` / `checkout.session.async_payment_succeeded`
- `checkout.session.async_payment_failed` / `checkout.session.expired`
- `payment_intent.succeeded` / `payment_intent.canceled` / `payment_intent.payment_failed`

Only objects whose metadata carries `feature=course` are applied; the order
itself is located through `course_order_id`, the session id or the
PaymentIntent id.

Safety:
- Never re-raise from the signal handler (prevents webhook retry storms).
- dj-stripe de-duplicates events; the settlement engine is idempotent on top.

Author: DSP Development Team
Date: 2025-09-03
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from django.db.models.signals import post_save
from django.dispatch import receiver
from djstripe.models import Event

logger = logging.getLogger(__name__)


def _extract_data_object(event: Event) -> Dict[str, Any]:
    """
    Extract the Stripe event's `data.object` payload from a dj-stripe Event.

    dj-stripe stores the raw Stripe JSON in `event.data`. Depending on the
    dj-stripe version this is either the full event body or only its `data`
    member.

    Returns:
        A dict representing the `data.object` (or `{}` if not found).
    """
    data = event.data or {}
    if not isinstance(data, dict):
        return {}
    # Standard Stripe event shape: {"data": {"object": {...}}}
    inner = data.get("data")
    if isinstance(inner, dict) and isinstance(inner.get("object"), dict):
        return inner["object"]
    if isinstance(data.get("object"), dict):
        return data["object"]
    return {}


def dispatch_event(event_type: str, data_object: Dict[str, Any]):
    """Hand a Stripe event to the course settlement intake."""
    from elearning.payments.intake import HANDLED_EVENTS, handle_gateway_event

    from .gateway import StripeSettlementGateway

    if event_type not in HANDLED_EVENTS:
        logger.debug("Unhandled event type: %s", event_type)
        return None
    return handle_gateway_event(event_type, data_object, gateway=StripeSettlementGateway())


# ---------- signal entrypoint ----------


@receiver(post_save, sender=Event)
def on_djstripe_event_created(sender, instance: Event, created: bool, **kwargs):
    """
    Post-save hook for dj-stripe Event.

    Runs once for each *new* event saved by dj-stripe (after signature
    verification and de-dup). Never re-raises.
    """
    if not created:
        return

    event_type = instance.type
    logger.info("[webhook] %s (event_id=%s)", event_type, instance.id)

    try:
        dispatch_event(event_type, _extract_data_object(instance))
    except Exception as exc:
        # Stripe would retry on a 5xx; the order is reconciled later instead.
        logger.exception("Error handling event %s: %s", event_type, exc)
