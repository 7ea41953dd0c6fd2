"""
Stripe Settlement Gateway Adapter
=================================

Thin, stateless passthrough to Stripe used by the course settlement engine.
It exposes exactly two concerns:

1. ``create_hosted_checkout``      → Stripe Checkout Session (mode="payment")
2. ``retrieve_settlement_detail``  → Checkout Session + PaymentIntent with the
                                     charge / balance transaction expanded

Response shapes
---------------
Stripe returns different shapes depending on which fields were expanded
(`payment_intent` can be an id or an object, `latest_charge` can be an id or
an object, ...). We normalize that **once, here**, into small dataclasses:

- ``CheckoutSessionDetail``
- ``PaymentDetail`` → ``ChargeDetail`` → ``BalanceBreakdown``
- ``PaymentMethodSummary`` (display only, never used for authorization)

Everything behind this module only ever sees these dataclasses with plain
ids and optional fields. Webhook payloads (plain dicts) go through the same
``from_stripe`` constructors.

Errors
------
All ``stripe.StripeError`` subclasses (network, timeout, invalid request,
authentication) are re-raised as ``GatewayError``. Callers in the settlement
engine treat a ``GatewayError`` during reconciliation as "no new information"
and retry later.

Author: DSP Development Team
Date: 2025-10-02
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe
from django.conf import settings

from elearning.payments.exceptions import CoursePaymentException

stripe.api_key = settings.STRIPE_SECRET_KEY
stripe.max_network_retries = getattr(settings, "STRIPE_MAX_NETWORK_RETRIES", 2)

logger = logging.getLogger(__name__)

SESSION_EXPAND = ["payment_intent", "customer_details"]
PAYMENT_INTENT_EXPAND = [
    "latest_charge",
    "latest_charge.balance_transaction",
    "payment_method",
]


class GatewayError(CoursePaymentException):
    """Raised when Stripe could not be reached or rejected the request."""

    default_kind = "gateway_error"
    default_status_code = 502


# ---------- boundary helpers ----------


def _ref_id(value: Any) -> Optional[str]:
    """Resolve an "object or id" reference to its id."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("id")
    return getattr(value, "id", None)


def _expanded(value: Any) -> Optional[Dict[str, Any]]:
    """Return the expanded object, or None if Stripe only sent an id."""
    return value if isinstance(value, dict) else None


def _int_or_none(value: Any) -> Optional[int]:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def _lower(value: Any) -> Optional[str]:
    return str(value).lower() if value else None


# ---------- response shapes ----------


@dataclass
class BalanceBreakdown:
    """Settled amounts from a balance transaction (all in cents)."""

    currency: Optional[str] = None
    amount: Optional[int] = None
    fee: Optional[int] = None
    net: Optional[int] = None

    @classmethod
    def from_stripe(cls, obj: Any) -> Optional["BalanceBreakdown"]:
        data = _expanded(obj)
        if data is None:
            return None
        return cls(
            currency=_lower(data.get("currency")),
            amount=_int_or_none(data.get("amount")),
            fee=_int_or_none(data.get("fee")),
            net=_int_or_none(data.get("net")),
        )


@dataclass
class ChargeDetail:
    id: Optional[str] = None
    created: Optional[datetime] = None
    receipt_url: Optional[str] = None
    balance: Optional[BalanceBreakdown] = None

    @classmethod
    def from_stripe(cls, obj: Any) -> Optional["ChargeDetail"]:
        data = _expanded(obj)
        if data is None:
            return None
        created = data.get("created")
        return cls(
            id=data.get("id"),
            created=(
                datetime.fromtimestamp(created, tz=timezone.utc)
                if isinstance(created, (int, float))
                else None
            ),
            receipt_url=data.get("receipt_url") or None,
            balance=BalanceBreakdown.from_stripe(data.get("balance_transaction")),
        )


@dataclass
class PaymentMethodSummary:
    """Display-only summary of how the buyer paid."""

    type: Optional[str] = None
    brand: Optional[str] = None
    last4: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None

    @classmethod
    def from_stripe(cls, obj: Any) -> Optional["PaymentMethodSummary"]:
        data = _expanded(obj)
        if data is None:
            return None
        card = data.get("card") or {}
        return cls(
            type=data.get("type"),
            brand=card.get("brand"),
            last4=card.get("last4"),
            exp_month=card.get("exp_month"),
            exp_year=card.get("exp_year"),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "brand": self.brand,
            "last4": self.last4,
            "exp_month": self.exp_month,
            "exp_year": self.exp_year,
        }


@dataclass
class PaymentDetail:
    """A PaymentIntent, optionally with its latest charge expanded."""

    id: Optional[str] = None
    status: Optional[str] = None
    currency: Optional[str] = None
    amount_received: Optional[int] = None
    latest_charge_id: Optional[str] = None
    charge: Optional[ChargeDetail] = None
    payment_method: Optional[PaymentMethodSummary] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, obj: Any) -> Optional["PaymentDetail"]:
        data = _expanded(obj)
        if data is None:
            return None
        return cls(
            id=data.get("id"),
            status=data.get("status"),
            currency=_lower(data.get("currency")),
            amount_received=_int_or_none(data.get("amount_received")),
            latest_charge_id=_ref_id(data.get("latest_charge")),
            charge=ChargeDetail.from_stripe(data.get("latest_charge")),
            payment_method=PaymentMethodSummary.from_stripe(data.get("payment_method")),
            metadata=dict(data.get("metadata") or {}),
        )

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def canceled(self) -> bool:
        return self.status == "canceled"


@dataclass
class CheckoutSessionDetail:
    id: Optional[str] = None
    url: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    payment_intent_id: Optional[str] = None
    customer_email: Optional[str] = None
    currency: Optional[str] = None
    amount_total: Optional[int] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    # Present when Stripe expanded `payment_intent`
    payment: Optional[PaymentDetail] = None

    @classmethod
    def from_stripe(cls, obj: Any) -> Optional["CheckoutSessionDetail"]:
        data = _expanded(obj)
        if data is None:
            return None
        details = data.get("customer_details") or {}
        return cls(
            id=data.get("id"),
            url=data.get("url"),
            status=data.get("status"),
            payment_status=data.get("payment_status"),
            payment_intent_id=_ref_id(data.get("payment_intent")),
            customer_email=details.get("email") or data.get("customer_email") or None,
            currency=_lower(data.get("currency")),
            amount_total=_int_or_none(data.get("amount_total")),
            metadata=dict(data.get("metadata") or {}),
            payment=PaymentDetail.from_stripe(data.get("payment_intent")),
        )

    @property
    def paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def expired(self) -> bool:
        return self.status == "expired"


@dataclass
class HostedCheckout:
    session_id: str
    redirect_url: str


@dataclass
class SettlementDetail:
    session: Optional[CheckoutSessionDetail] = None
    payment: Optional[PaymentDetail] = None


# ---------- adapter ----------


class StripeSettlementGateway:
    """
    Stateless Stripe adapter for course settlement.

    No local state is kept; every call is a passthrough to the Stripe API.
    """

    def create_hosted_checkout(
        self,
        amount_cents: int,
        currency: str,
        label: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> HostedCheckout:
        """
        Create a hosted Checkout Session for a single course.

        The metadata is attached to both the session and the PaymentIntent
        so that either webhook alone can re-identify the order.
        """
        try:
            session = stripe.checkout.Session.create(
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {"name": label},
                            "unit_amount": amount_cents,
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
            )
        except stripe.StripeError as e:
            logger.warning("Stripe checkout creation failed: %s", e)
            raise GatewayError(
                "Stripe Checkout could not be created.",
                details={"stripe_error": getattr(e, "user_message", None) or str(e)},
            ) from e

        return HostedCheckout(session_id=session["id"], redirect_url=session["url"])

    def retrieve_session(self, session_id: str) -> CheckoutSessionDetail:
        try:
            session = stripe.checkout.Session.retrieve(session_id, expand=SESSION_EXPAND)
        except stripe.StripeError as e:
            raise GatewayError(f"Checkout session {session_id} unavailable.") from e
        return CheckoutSessionDetail.from_stripe(session)

    def retrieve_payment_detail(self, payment_intent_id: str) -> PaymentDetail:
        try:
            pi = stripe.PaymentIntent.retrieve(payment_intent_id, expand=PAYMENT_INTENT_EXPAND)
        except stripe.StripeError as e:
            raise GatewayError(f"PaymentIntent {payment_intent_id} unavailable.") from e
        return PaymentDetail.from_stripe(pi)

    def retrieve_settlement_detail(
        self,
        session_id: Optional[str] = None,
        payment_intent_id: Optional[str] = None,
    ) -> SettlementDetail:
        """
        Fetch the session and the fully expanded payment detail.

        Each half that cannot be fetched is returned as ``None`` (logged),
        so that one missing object does not hide the other.
        """
        detail = SettlementDetail()

        if session_id:
            try:
                detail.session = self.retrieve_session(session_id)
            except GatewayError:
                logger.info("No session detail for %s (will retry later).", session_id)

        pid = payment_intent_id or (detail.session.payment_intent_id if detail.session else None)
        if pid:
            try:
                detail.payment = self.retrieve_payment_detail(pid)
            except GatewayError:
                logger.info("No payment detail for %s (will retry later).", pid)

        return detail
