"""
Event Intake

All the ways a course order learns about its payment end up here:

1. ``refresh_course_order``  → buyer returns from Stripe / reconciliation job
2. ``handle_gateway_event``  → Stripe webhook (via dj-stripe, see
                               ``core.stripe_integration.signals``)
3. ``confirm_manual_order``  → operator confirms or rejects a crypto payment

Each of them hydrates the order in memory and then calls
``persist_and_settle``, which is the single place where the order status is
written and the settlement effects (payout ledger + enrollment) are applied.

Persisting re-reads the order row under ``select_for_update``. A stored
``succeeded`` is never overwritten, and only the caller that actually moves
the order to ``succeeded`` schedules the buyer / seller notifications.

Author: DSP Development Team
Date: 2025-10-02
"""

import logging
from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.stripe_integration.gateway import (
    CheckoutSessionDetail,
    GatewayError,
    PaymentDetail,
)
from elearning.courses.models import CourseEnrollment
from elearning.payments import notifications
from elearning.payments.enrollment import grant_enrollment
from elearning.payments.exceptions import NotManualOrder, OrderNotFound
from elearning.payments.hydration import apply_manual_outcome, hydrate
from elearning.payments.ledger import PayoutLedger
from elearning.payments.models import CourseOrder
from elearning.payments.money import cents_to_unit

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = [
    "status",
    "paid_at",
    "checkout_session_id",
    "payment_intent_id",
    "charge_id",
    "receipt_url",
    "customer_email",
    "payment_method",
    "settlement_currency",
    "gross_amount_cents",
    "fee_cents",
    "net_cents",
    "manual_note",
    "manual_tx_hash",
    "manual_decided_at",
]

SESSION_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
    "checkout.session.async_payment_failed",
    "checkout.session.expired",
}
PAYMENT_INTENT_EVENTS = {
    "payment_intent.succeeded",
    "payment_intent.canceled",
    "payment_intent.payment_failed",
}
HANDLED_EVENTS = SESSION_EVENTS | PAYMENT_INTENT_EVENTS

ENROLLMENT_SOURCES = {
    CourseOrder.METHOD_GATEWAY: CourseEnrollment.SOURCE_CHECKOUT,
    CourseOrder.METHOD_MANUAL: CourseEnrollment.SOURCE_MANUAL,
    CourseOrder.METHOD_FREE: CourseEnrollment.SOURCE_FREE,
}


# ---------- lookup ----------


def locate_order(
    *,
    order_id=None,
    session_id: Optional[str] = None,
    payment_intent_id: Optional[str] = None,
    buyer=None,
) -> CourseOrder:
    """
    Find an order by any one of its references.

    Raises:
        OrderNotFound: no reference given or nothing matches
    """
    qs = CourseOrder.objects.alive().select_related("course", "course__community")
    if buyer is not None:
        qs = qs.filter(buyer=buyer)

    order = None
    if order_id:
        order = qs.filter(pk=order_id).first()
    if order is None and session_id:
        order = qs.filter(checkout_session_id=session_id).first()
    if order is None and payment_intent_id:
        order = qs.filter(payment_intent_id=payment_intent_id).first()

    if order is None:
        raise OrderNotFound()
    return order


# ---------- persist & settle ----------


def apply_settlement_effects(order: CourseOrder, ledger: Optional[PayoutLedger] = None) -> None:
    """Write the payout and the enrollment for a succeeded order (idempotent)."""
    if order.status != CourseOrder.STATUS_SUCCEEDED:
        return
    ledger = ledger or PayoutLedger.from_settings()
    with transaction.atomic():
        ledger.settle_order(order)
        grant_enrollment(
            order.buyer_id,
            order.course_id,
            source=ENROLLMENT_SOURCES.get(order.method, CourseEnrollment.SOURCE_ADMIN),
            reference=order.checkout_session_id,
        )


def _schedule_success_notifications(order: CourseOrder) -> None:
    payload = {
        "order_id": order.pk,
        "course_id": order.course_id,
        "course_title": order.course_title,
        "currency": order.currency.upper(),
    }
    notifications.notify_on_commit(
        order.buyer_id, notifications.COURSE_PURCHASE_SUCCEEDED, payload
    )
    if order.seller_id and order.seller_id != order.buyer_id:
        net = order.payouts.values_list("net_amount_cents", flat=True).first()
        notifications.notify_on_commit(
            order.seller_id,
            notifications.COURSE_SALE,
            {**payload, "net": cents_to_unit(net)},
        )


def persist_and_settle(order: CourseOrder, ledger: Optional[PayoutLedger] = None) -> CourseOrder:
    """
    Persist a hydrated order and apply the settlement effects.

    Returns:
        The order as stored after this call
    """
    try:
        with transaction.atomic():
            stored = CourseOrder.objects.select_for_update().get(pk=order.pk)
            first_success = False

            if stored.status == CourseOrder.STATUS_SUCCEEDED:
                if order.status != CourseOrder.STATUS_SUCCEEDED:
                    logger.info(
                        "Order %s already succeeded, ignoring status %s", order.pk, order.status
                    )
                order.status = CourseOrder.STATUS_SUCCEEDED
                order.paid_at = stored.paid_at or order.paid_at
            elif order.status == CourseOrder.STATUS_SUCCEEDED:
                first_success = True

            order.save(update_fields=SNAPSHOT_FIELDS + ["updated_at"])

            if order.status == CourseOrder.STATUS_SUCCEEDED:
                apply_settlement_effects(order, ledger)

            if first_success:
                logger.info("Order %s settled (%s)", order.pk, order.method)
                _schedule_success_notifications(order)
            elif stored.status != order.status:
                logger.info("Order %s: %s -> %s", order.pk, stored.status, order.status)
    except IntegrityError:
        logger.error(
            "Order %s could not be settled: buyer %s already holds a settled order for course %s. "
            "Manual follow-up required.",
            order.pk,
            order.buyer_id,
            order.course_id,
        )
        order.refresh_from_db()
    return order


# ---------- entry points ----------


def refresh_course_order(
    order: CourseOrder,
    *,
    gateway,
    session_id: Optional[str] = None,
    payment_intent_id: Optional[str] = None,
) -> CourseOrder:
    """
    Reconcile a gateway order against Stripe.

    Manual and free orders are returned unchanged. Gateway errors count as
    "no new information": the order keeps its stored state.
    """
    if order.method != CourseOrder.METHOD_GATEWAY:
        return order

    session_id = session_id or order.checkout_session_id or None
    payment_intent_id = payment_intent_id or order.payment_intent_id or None
    if not session_id and not payment_intent_id:
        return order

    detail = gateway.retrieve_settlement_detail(
        session_id=session_id, payment_intent_id=payment_intent_id
    )
    if detail.session is None and detail.payment is None:
        logger.info("No gateway data for order %s, leaving it unchanged", order.pk)
        return order

    hydrate(order, detail.session, detail.payment, gateway=gateway)
    return persist_and_settle(order)


def handle_gateway_event(event_type: str, data_object: Dict[str, Any], *, gateway) -> Optional[CourseOrder]:
    """
    Apply a Stripe webhook event to its course order.

    Returns:
        The updated order, or ``None`` if the event was ignored
    """
    if event_type not in HANDLED_EVENTS:
        return None

    metadata = (data_object or {}).get("metadata") or {}
    if metadata.get("feature") != "course":
        logger.debug("Ignoring %s without course metadata", event_type)
        return None

    session = payment = None
    if event_type in SESSION_EVENTS:
        session = CheckoutSessionDetail.from_stripe(data_object)
    else:
        payment = PaymentDetail.from_stripe(data_object)

    try:
        order = locate_order(
            order_id=metadata.get("course_order_id"),
            session_id=session.id if session else None,
            payment_intent_id=(
                payment.id if payment else (session.payment_intent_id if session else None)
            ),
        )
    except OrderNotFound:
        logger.warning(
            "No course order for %s (order_id=%s)", event_type, metadata.get("course_order_id")
        )
        return None

    if order.method != CourseOrder.METHOD_GATEWAY:
        logger.warning("Ignoring %s for non-gateway order %s", event_type, order.pk)
        return None

    # A payment intent without an expanded charge carries no fee data; try
    # to fetch the full detail before hydrating.
    if payment is not None and payment.charge is None and payment.id:
        try:
            payment = gateway.retrieve_payment_detail(payment.id)
        except GatewayError:
            logger.info("Using webhook payload for %s, payment detail unavailable", payment.id)

    hydrate(order, session, payment, gateway=gateway)
    if event_type == "checkout.session.async_payment_failed" and order.status != CourseOrder.STATUS_SUCCEEDED:
        order.status = CourseOrder.STATUS_FAILED
    return persist_and_settle(order)


def confirm_manual_order(order_id, outcome, *, note: str = "", tx_hash: str = "") -> CourseOrder:
    """
    Operator confirmation of a manual (crypto) payment.

    Raises:
        OrderNotFound: unknown order
        NotManualOrder: order was not created for manual verification
        InvalidManualOutcome: unknown outcome
    """
    order = locate_order(order_id=order_id)
    if order.method != CourseOrder.METHOD_MANUAL:
        raise NotManualOrder(order.pk)

    if order.status == CourseOrder.STATUS_SUCCEEDED:
        # normalize anyway so an invalid outcome is still reported
        apply_manual_outcome(order, outcome)
        logger.info("Manual order %s already succeeded, confirmation ignored", order.pk)
        return order

    apply_manual_outcome(order, outcome)
    order.manual_note = note or order.manual_note
    order.manual_tx_hash = tx_hash or order.manual_tx_hash
    order.manual_decided_at = timezone.now()
    persist_and_settle(order)

    if order.status in (CourseOrder.STATUS_FAILED, CourseOrder.STATUS_CANCELED):
        notifications.notify_on_commit(
            order.buyer_id,
            notifications.COURSE_PAYMENT_REJECTED,
            {
                "order_id": order.pk,
                "course_id": order.course_id,
                "course_title": order.course_title,
                "status": order.status,
                "note": note,
            },
        )
    return order
