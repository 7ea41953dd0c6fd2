"""
Checkout Orchestrator

Validates a buyer's eligibility for a course, creates the ``CourseOrder``
and starts the chosen settlement path:

- ``gateway``  → Stripe hosted Checkout Session, buyer is redirected
- ``manual``   → reference code for a crypto transfer, confirmed later by
                 an operator
- free courses → ``enroll_free`` settles a zero-amount order immediately

Checks run in a fixed order and fail fast with a distinct ``kind``; nothing
is written before all of them pass.

Author: DSP Development Team
Date: 2025-10-02
"""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.stripe_integration.gateway import GatewayError, StripeSettlementGateway
from elearning.courses.models import Course, CourseEnrollment
from elearning.payments.exceptions import CheckoutValidationError
from elearning.payments.models import CourseOrder
from elearning.payments.money import cents_to_unit, to_cents

logger = logging.getLogger(__name__)

METHOD_ALIASES = {
    "gateway": CourseOrder.METHOD_GATEWAY,
    "stripe": CourseOrder.METHOD_GATEWAY,
    "manual": CourseOrder.METHOD_MANUAL,
    "crypto": CourseOrder.METHOD_MANUAL,
}

DEFAULT_MANUAL_NETWORK = "USDT"


@dataclass
class CheckoutResult:
    order: CourseOrder
    redirect_url: Optional[str] = None
    reference: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        return self.order.method == CourseOrder.METHOD_MANUAL


def normalize_method(method) -> str:
    key = str(method or CourseOrder.METHOD_GATEWAY).strip().lower()
    if key not in METHOD_ALIASES:
        raise CheckoutValidationError("invalid_method", f"Unsupported payment method: {method!r}.")
    return METHOD_ALIASES[key]


def manual_reference() -> str:
    """``REF-<epoch ms>-<0..999>``"""
    return f"REF-{int(time.time() * 1000)}-{secrets.randbelow(1000)}"


class CourseCheckout:
    """
    Entry point for buying (or freely enrolling in) a course.

    Args:
        gateway: Settlement gateway adapter (``StripeSettlementGateway``)
        default_currency: Currency used when the course has none
        frontend_url: Base URL for the Stripe success / cancel redirects
    """

    def __init__(self, gateway, default_currency: str = "eur", frontend_url: str = ""):
        self.gateway = gateway
        self.default_currency = (default_currency or "eur").lower()
        self.frontend_url = (frontend_url or "").rstrip("/")

    @classmethod
    def from_settings(cls) -> "CourseCheckout":
        return cls(
            gateway=StripeSettlementGateway(),
            default_currency=getattr(settings, "DEFAULT_CURRENCY", "eur"),
            frontend_url=getattr(settings, "FRONTEND_URL", ""),
        )

    # ---------- eligibility ----------

    def _eligible_course(self, buyer, course_id) -> Course:
        course = (
            Course.objects.purchasable().select_related("owner").filter(pk=course_id).first()
        )
        if course is None:
            raise CheckoutValidationError("not_found", "Course not found.")
        if not course.owner_id:
            raise CheckoutValidationError("missing_seller", "Course has no seller.")
        if course.owner_id == buyer.pk:
            raise CheckoutValidationError("own_course", "You cannot buy your own course.")
        if CourseEnrollment.is_enrolled(buyer.pk, course.pk):
            raise CheckoutValidationError("already_enrolled", "You are already enrolled in this course.")
        return course

    def _currency_for(self, course: Course) -> str:
        return (course.currency or self.default_currency).lower()

    # ---------- paid checkout ----------

    def start_checkout(
        self,
        buyer,
        course_id,
        method=CourseOrder.METHOD_GATEWAY,
        *,
        network: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Create a course order and start the chosen payment path.

        Raises:
            CheckoutValidationError: buyer or course not eligible
            GatewayError: Stripe rejected or could not create the session
        """
        method = normalize_method(method)
        course = self._eligible_course(buyer, course_id)

        if course.price_type != Course.PRICE_PAID:
            raise CheckoutValidationError("not_payable", "This course is free, enroll instead.")

        amount_cents = to_cents(course.price)
        if amount_cents <= 0:
            raise CheckoutValidationError("invalid_amount", "Course price must be greater than zero.")

        order = CourseOrder.objects.create(
            buyer=buyer,
            course=course,
            seller_id=course.owner_id,
            course_title=course.title,
            currency=self._currency_for(course),
            unit_amount=cents_to_unit(amount_cents),
            unit_amount_cents=amount_cents,
            method=method,
            status=CourseOrder.STATUS_REQUIRES_PAYMENT,
        )
        logger.info(
            "Course order %s created: buyer=%s course=%s amount=%s %s via %s",
            order.pk,
            buyer.pk,
            course.pk,
            amount_cents,
            order.currency,
            method,
        )

        if method == CourseOrder.METHOD_MANUAL:
            return self._start_manual(order, network=network, customer_email=customer_email)
        return self._start_gateway(order)

    def _success_url(self, order: CourseOrder) -> str:
        query = urlencode({"order": order.pk, "course": order.course_id})
        return (
            f"{self.frontend_url}/payments/checkout/success"
            f"?session_id={{CHECKOUT_SESSION_ID}}&{query}"
        )

    def _cancel_url(self, order: CourseOrder) -> str:
        query = urlencode({"order": order.pk, "course": order.course_id})
        return f"{self.frontend_url}/payments/checkout/cancel?{query}"

    def _start_gateway(self, order: CourseOrder) -> CheckoutResult:
        metadata = {
            "feature": "course",
            "course_order_id": str(order.pk),
            "user_id": str(order.buyer_id),
            "course_id": str(order.course_id),
        }
        try:
            hosted = self.gateway.create_hosted_checkout(
                amount_cents=order.unit_amount_cents,
                currency=order.currency,
                label=order.course_title,
                success_url=self._success_url(order),
                cancel_url=self._cancel_url(order),
                metadata=metadata,
            )
        except GatewayError:
            order.deleted_at = timezone.now()
            order.save(update_fields=["deleted_at", "updated_at"])
            logger.warning("Checkout session for order %s failed, order discarded", order.pk)
            raise

        order.checkout_session_id = hosted.session_id
        order.save(update_fields=["checkout_session_id", "updated_at"])
        return CheckoutResult(order=order, redirect_url=hosted.redirect_url)

    def _start_manual(self, order: CourseOrder, *, network=None, customer_email=None) -> CheckoutResult:
        reference = manual_reference()
        order.checkout_session_id = reference
        order.payment_method = {
            "type": "manual_crypto",
            "brand": network or DEFAULT_MANUAL_NETWORK,
        }
        if customer_email:
            order.customer_email = customer_email
        order.save(
            update_fields=["checkout_session_id", "payment_method", "customer_email", "updated_at"]
        )
        return CheckoutResult(order=order, reference=reference)

    # ---------- free enrollment ----------

    def enroll_free(self, buyer, course_id) -> CourseOrder:
        """
        Enroll ``buyer`` in a free course through a zero-amount order.

        Raises:
            CheckoutValidationError: buyer or course not eligible, or the
                course is paid (``course_paid``)
        """
        from elearning.payments.intake import apply_settlement_effects

        course = self._eligible_course(buyer, course_id)
        if course.price_type != Course.PRICE_FREE:
            raise CheckoutValidationError("course_paid", "This course must be purchased.")

        now = timezone.now()
        currency = self._currency_for(course)
        try:
            with transaction.atomic():
                order, _created = CourseOrder.objects.get_or_create(
                    buyer=buyer,
                    course=course,
                    method=CourseOrder.METHOD_FREE,
                    deleted_at__isnull=True,
                    defaults={
                        "seller_id": course.owner_id,
                        "course_title": course.title,
                        "currency": currency,
                        "unit_amount": cents_to_unit(0),
                        "unit_amount_cents": 0,
                        "status": CourseOrder.STATUS_SUCCEEDED,
                        "paid_at": now,
                        "settlement_currency": currency,
                        "gross_amount_cents": 0,
                        "fee_cents": 0,
                        "net_cents": 0,
                    },
                )
                apply_settlement_effects(order)
        except IntegrityError:
            # Buyer already holds a settled order for this course (e.g. bought
            # before the course became free).
            order = (
                CourseOrder.objects.filter(buyer=buyer, course=course, status=CourseOrder.STATUS_SUCCEEDED)
                .order_by("-created_at")
                .first()
            )
            if order is None:
                raise
            logger.info("Free enrollment for user %s reuses settled order %s", buyer.pk, order.pk)
            apply_settlement_effects(order)

        logger.info("Free enrollment for user %s in course %s (order %s)", buyer.pk, course.pk, order.pk)
        return order
