"""
Test helpers for the course payment tests.

Builds users, courses, orders and Stripe-shaped payloads. The Stripe
gateway is always a ``unittest.mock`` stand-in, no test talks to Stripe.
"""

from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import User

from core.stripe_integration.gateway import (
    CheckoutSessionDetail,
    GatewayError,
    HostedCheckout,
    PaymentDetail,
    SettlementDetail,
    StripeSettlementGateway,
)
from elearning.courses.models import Course
from elearning.payments.models import CourseOrder
from elearning.payments.money import cents_to_unit

CHARGE_CREATED = 1_700_000_000  # 2023-11-14T22:13:20Z


def make_user(username, **extra):
    extra.setdefault("email", f"{username}@test.com")
    return User.objects.create_user(username=username, password="Musterpasswort-1", **extra)


def make_course(owner, *, price="49.99", price_type=Course.PRICE_PAID, currency="usd", **extra):
    extra.setdefault("title", "Python für Einsteiger")
    return Course.objects.create(
        owner=owner,
        price=Decimal(price),
        price_type=price_type,
        currency=currency,
        **extra,
    )


def make_order(buyer, course, *, method=CourseOrder.METHOD_GATEWAY, cents=4999, **extra):
    extra.setdefault("checkout_session_id", "cs_test_1" if method == CourseOrder.METHOD_GATEWAY else "")
    return CourseOrder.objects.create(
        buyer=buyer,
        course=course,
        seller=course.owner,
        course_title=course.title,
        currency=course.currency or "eur",
        unit_amount=cents_to_unit(cents),
        unit_amount_cents=cents,
        method=method,
        **extra,
    )


def payment_payload(
    pid="pi_test_1",
    *,
    status="succeeded",
    amount=4999,
    fee=175,
    currency="usd",
    charge_id="ch_test_1",
    metadata=None,
    expanded=True,
):
    charge = charge_id
    if expanded and charge_id:
        charge = {
            "id": charge_id,
            "object": "charge",
            "created": CHARGE_CREATED,
            "receipt_url": f"https://pay.stripe.com/receipts/{charge_id}",
            "balance_transaction": {
                "id": "txn_test_1",
                "object": "balance_transaction",
                "currency": currency,
                "amount": amount,
                "fee": fee,
                "net": amount - fee,
            },
        }
    return {
        "id": pid,
        "object": "payment_intent",
        "status": status,
        "currency": currency,
        "amount_received": amount if status == "succeeded" else 0,
        "latest_charge": charge,
        "payment_method": {
            "id": "pm_test_1",
            "type": "card",
            "card": {"brand": "visa", "last4": "4242", "exp_month": 12, "exp_year": 2030},
        },
        "metadata": metadata or {},
    }


def session_payload(
    session_id="cs_test_1",
    *,
    order=None,
    payment_status="paid",
    status="complete",
    payment_intent="pi_test_1",
    amount_total=4999,
    currency="usd",
    email="buyer@test.com",
):
    metadata = {}
    if order is not None:
        metadata = {
            "feature": "course",
            "course_order_id": str(order.pk),
            "user_id": str(order.buyer_id),
            "course_id": str(order.course_id),
        }
    return {
        "id": session_id,
        "object": "checkout.session",
        "url": f"https://checkout.stripe.com/c/pay/{session_id}",
        "status": status,
        "payment_status": payment_status,
        "payment_intent": payment_intent,
        "customer_details": {"email": email},
        "currency": currency,
        "amount_total": amount_total,
        "metadata": metadata,
    }


def fake_gateway(session=None, payment=None):
    """
    Mocked ``StripeSettlementGateway`` answering with the given payloads.

    ``payment=None`` makes ``retrieve_payment_detail`` raise ``GatewayError``.
    """
    gateway = mock.Mock(spec=StripeSettlementGateway)
    session_detail = CheckoutSessionDetail.from_stripe(session)
    payment_detail = PaymentDetail.from_stripe(payment)

    gateway.create_hosted_checkout.return_value = HostedCheckout(
        session_id="cs_test_1", redirect_url="https://checkout.stripe.com/c/pay/cs_test_1"
    )
    gateway.retrieve_session.return_value = session_detail
    if payment_detail is None:
        gateway.retrieve_payment_detail.side_effect = GatewayError("PaymentIntent unavailable.")
    else:
        gateway.retrieve_payment_detail.return_value = payment_detail
    gateway.retrieve_settlement_detail.return_value = SettlementDetail(
        session=session_detail, payment=payment_detail
    )
    return gateway
