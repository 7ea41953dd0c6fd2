"""
Hydration Engine

Maps gateway state (or a manual outcome) into a ``CourseOrder`` in memory.
Nothing here touches the database; persisting and triggering the
settlement effects is done by ``elearning.payments.intake``.

Value precedence when several sources carry the same field:

    balance transaction  >  payment intent  >  checkout session  >  stored

Status rules:

- a success signal (payment ``succeeded`` or session ``paid``) wins
- an order that is already ``succeeded`` never leaves that state
- otherwise ``expired`` / ``canceled`` signals cancel the order
- anything else keeps (or puts) the order in ``requires_payment``

Author: DSP Development Team
Date: 2025-10-02
"""

import logging
from typing import Optional

from django.utils import timezone

from core.stripe_integration.gateway import (
    CheckoutSessionDetail,
    GatewayError,
    PaymentDetail,
)
from elearning.payments.exceptions import InvalidManualOutcome
from elearning.payments.models import CourseOrder

logger = logging.getLogger(__name__)

MANUAL_OUTCOMES = {
    "success": CourseOrder.STATUS_SUCCEEDED,
    "succeeded": CourseOrder.STATUS_SUCCEEDED,
    "paid": CourseOrder.STATUS_SUCCEEDED,
    "approved": CourseOrder.STATUS_SUCCEEDED,
    "failed": CourseOrder.STATUS_FAILED,
    "rejected": CourseOrder.STATUS_FAILED,
    "canceled": CourseOrder.STATUS_CANCELED,
    "cancelled": CourseOrder.STATUS_CANCELED,
}


def _first(*values):
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _resolve_payment(
    order: CourseOrder,
    session: Optional[CheckoutSessionDetail],
    gateway,
) -> Optional[PaymentDetail]:
    pid = _first(session.payment_intent_id if session else None, order.payment_intent_id)
    if pid and gateway is not None:
        try:
            return gateway.retrieve_payment_detail(pid)
        except GatewayError:
            logger.info("Payment detail for %s unavailable, using session data only", pid)
    return session.payment if session else None


def hydrate(
    order: CourseOrder,
    session: Optional[CheckoutSessionDetail] = None,
    payment: Optional[PaymentDetail] = None,
    *,
    gateway=None,
) -> None:
    """
    Merge gateway state into ``order`` and recompute its status.

    Args:
        order: The order to mutate in place
        session: Checkout session detail, if known
        payment: Payment detail, if known. When missing it is resolved
            through ``gateway`` from the session or stored payment reference.
        gateway: Optional ``StripeSettlementGateway`` used for that lookup
    """
    if payment is None:
        payment = _resolve_payment(order, session, gateway)

    charge = payment.charge if payment else None
    balance = charge.balance if charge else None

    # --- amounts ---
    currency = _first(
        balance.currency if balance else None,
        payment.currency if payment else None,
        session.currency if session else None,
        order.settlement_currency,
        order.currency,
    )
    gross = _first(
        balance.amount if balance else None,
        payment.amount_received if payment else None,
        order.gross_amount_cents,
        order.unit_amount_cents,
    )
    fee = _first(balance.fee if balance else None, order.fee_cents)
    if balance is not None and balance.net is not None:
        net = balance.net
    elif fee is not None and gross is not None:
        net = gross - fee
    else:
        net = order.net_cents

    order.settlement_currency = (currency or "").lower()
    order.gross_amount_cents = gross
    order.fee_cents = fee
    order.net_cents = net

    # --- references & display data ---
    order.checkout_session_id = _first(session.id if session else None, order.checkout_session_id) or ""
    order.payment_intent_id = (
        _first(
            payment.id if payment else None,
            session.payment_intent_id if session else None,
            order.payment_intent_id,
        )
        or ""
    )
    order.charge_id = (
        _first(
            charge.id if charge else None,
            payment.latest_charge_id if payment else None,
            order.charge_id,
        )
        or ""
    )
    order.receipt_url = _first(charge.receipt_url if charge else None, order.receipt_url) or ""
    order.customer_email = (
        _first(session.customer_email if session else None, order.customer_email) or ""
    )
    if payment is not None and payment.payment_method is not None:
        order.payment_method = payment.payment_method.as_dict()

    # --- status ---
    succeeded_signal = bool(
        (payment is not None and payment.succeeded) or (session is not None and session.paid)
    )
    canceled_signal = bool(
        (session is not None and session.expired) or (payment is not None and payment.canceled)
    )

    if succeeded_signal:
        order.status = CourseOrder.STATUS_SUCCEEDED
        if order.paid_at is None:
            order.paid_at = (charge.created if charge else None) or timezone.now()
    elif order.status == CourseOrder.STATUS_SUCCEEDED:
        pass
    elif canceled_signal:
        order.status = CourseOrder.STATUS_CANCELED
    elif order.status not in CourseOrder.TERMINAL_STATUSES:
        order.status = CourseOrder.STATUS_REQUIRES_PAYMENT


def normalize_manual_outcome(outcome) -> str:
    """Map an operator outcome (``approved``, ``rejected``, ...) to an order status."""
    status = MANUAL_OUTCOMES.get(str(outcome or "").strip().lower())
    if status is None:
        raise InvalidManualOutcome(outcome)
    return status


def apply_manual_outcome(order: CourseOrder, outcome) -> None:
    """
    Apply an operator decision to a manual order in memory.

    A succeeded order is left untouched. On success the gross and net are
    the frozen unit amount and the fee is unknown.
    """
    status = normalize_manual_outcome(outcome)

    if order.status == CourseOrder.STATUS_SUCCEEDED:
        return

    order.status = status
    if status == CourseOrder.STATUS_SUCCEEDED:
        order.settlement_currency = order.currency
        order.gross_amount_cents = order.unit_amount_cents
        order.net_cents = order.unit_amount_cents
        order.fee_cents = None
        if order.paid_at is None:
            order.paid_at = timezone.now()
