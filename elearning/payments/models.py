"""
Course Payment Models

Persistence for the course settlement engine.

Models:
- CourseOrder: One checkout attempt for one course by one buyer. Carries the
  order lifecycle (requires_payment → succeeded | canceled | failed) and an
  embedded settlement snapshot hydrated from the gateway.
- CoursePayout: Seller-side ledger entry (gross, commission, net).
- CourseCommission: Platform-side ledger entry (commission only).

Invariants enforced by the database:
- ``unit_amount_cents >= 0``
- one settled order per (buyer, course)
- one payout per (order, course, seller)
- one commission per (order, course)

All money is stored as integer cents; unit values are derived properties.

Author: DSP Development Team
Version: 1.0.0
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from elearning.courses.models import Course
from elearning.payments.money import cents_to_unit


def _unit_or_none(cents: Optional[int]) -> Optional[Decimal]:
    return cents_to_unit(cents) if cents is not None else None


class CourseOrderQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def open_gateway(self):
        """Gateway orders that have a session and are still awaiting payment."""
        return self.alive().filter(
            method=CourseOrder.METHOD_GATEWAY,
            status=CourseOrder.STATUS_REQUIRES_PAYMENT,
        ).exclude(checkout_session_id="")

    def pending_manual(self):
        return self.alive().filter(
            method=CourseOrder.METHOD_MANUAL,
            status=CourseOrder.STATUS_REQUIRES_PAYMENT,
        )


class CourseOrder(models.Model):
    """
    Purchase attempt for a single course.

    The price is frozen at creation (``unit_amount_cents`` is authoritative
    and never recomputed from the catalog). ``succeeded`` is terminal: once
    stored, no code path moves the order to another status.

    The settlement snapshot columns are only ever *merged* into: a value a
    newer gateway read lacks never erases a stored one.
    """

    STATUS_REQUIRES_PAYMENT = "requires_payment"
    STATUS_SUCCEEDED = "succeeded"
    STATUS_CANCELED = "canceled"
    STATUS_FAILED = "failed"
    STATUS_CHOICES = [
        (STATUS_REQUIRES_PAYMENT, _("Requires payment")),
        (STATUS_SUCCEEDED, _("Succeeded")),
        (STATUS_CANCELED, _("Canceled")),
        (STATUS_FAILED, _("Failed")),
    ]
    TERMINAL_STATUSES = (STATUS_SUCCEEDED, STATUS_FAILED, STATUS_CANCELED)

    METHOD_GATEWAY = "gateway"
    METHOD_MANUAL = "manual"
    METHOD_FREE = "free"
    METHOD_CHOICES = [
        (METHOD_GATEWAY, _("Stripe Checkout")),
        (METHOD_MANUAL, _("Manual (crypto)")),
        (METHOD_FREE, _("Free")),
    ]

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="course_orders",
        verbose_name=_("Buyer"),
    )
    course = models.ForeignKey(
        Course,
        on_delete=models.PROTECT,
        related_name="orders",
        verbose_name=_("Course"),
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="course_sales",
        verbose_name=_("Seller"),
    )
    course_title = models.CharField(max_length=200, blank=True, verbose_name=_("Course Title"))

    currency = models.CharField(max_length=3, verbose_name=_("Currency"))
    unit_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00"), verbose_name=_("Unit Amount")
    )
    unit_amount_cents = models.IntegerField(default=0, verbose_name=_("Unit Amount (cents)"))

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_REQUIRES_PAYMENT,
        db_index=True,
        verbose_name=_("Status"),
    )
    method = models.CharField(
        max_length=10,
        choices=METHOD_CHOICES,
        default=METHOD_GATEWAY,
        verbose_name=_("Method"),
    )
    paid_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Paid at"))
    deleted_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Deleted at"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # --- settlement snapshot ---
    checkout_session_id = models.CharField(
        max_length=255,
        blank=True,
        db_index=True,
        verbose_name=_("Checkout Session / Reference"),
        help_text=_("Stripe Checkout Session id, or the manual payment reference"),
    )
    payment_intent_id = models.CharField(max_length=255, blank=True, db_index=True)
    charge_id = models.CharField(max_length=255, blank=True)
    receipt_url = models.URLField(max_length=500, blank=True)
    customer_email = models.EmailField(blank=True)
    payment_method = models.JSONField(default=dict, blank=True)
    settlement_currency = models.CharField(max_length=3, blank=True)
    gross_amount_cents = models.IntegerField(null=True, blank=True)
    fee_cents = models.IntegerField(null=True, blank=True)
    net_cents = models.IntegerField(null=True, blank=True)

    # --- manual channel trace ---
    manual_note = models.TextField(blank=True)
    manual_tx_hash = models.CharField(max_length=255, blank=True)
    manual_decided_at = models.DateTimeField(null=True, blank=True)

    objects = CourseOrderQuerySet.as_manager()

    class Meta:
        verbose_name = _("Course Order")
        verbose_name_plural = _("Course Orders")
        ordering = ["-created_at"]
        db_table = "elearning_course_order"
        constraints = [
            models.CheckConstraint(
                condition=Q(unit_amount_cents__gte=0),
                name="course_order_unit_amount_cents_gte_0",
            ),
            models.UniqueConstraint(
                fields=["buyer", "course"],
                condition=Q(status="succeeded"),
                name="uniq_settled_course_order_per_buyer",
            ),
        ]
        indexes = [
            models.Index(fields=["buyer", "course", "status"], name="course_order_buyer_idx"),
        ]

    def __str__(self) -> str:
        return f"CourseOrder #{self.pk} ({self.course_title or self.course_id}, {self.status})"

    @property
    def is_succeeded(self) -> bool:
        return self.status == self.STATUS_SUCCEEDED

    @property
    def is_manual(self) -> bool:
        return self.method == self.METHOD_MANUAL

    @property
    def gross_amount(self) -> Optional[Decimal]:
        return _unit_or_none(self.gross_amount_cents)

    @property
    def fee(self) -> Optional[Decimal]:
        return _unit_or_none(self.fee_cents)

    @property
    def net(self) -> Optional[Decimal]:
        return _unit_or_none(self.net_cents)

    def settlement_summary(self) -> Dict[str, Any]:
        """Display projection of the settlement snapshot."""
        return {
            "checkout_session_id": self.checkout_session_id or None,
            "payment_intent_id": self.payment_intent_id or None,
            "charge_id": self.charge_id or None,
            "receipt_url": self.receipt_url or None,
            "customer_email": self.customer_email or None,
            "payment_method": self.payment_method or None,
            "amounts": {
                "currency": self.settlement_currency or self.currency,
                "gross": self.gross_amount,
                "gross_cents": self.gross_amount_cents,
                "fee": self.fee,
                "fee_cents": self.fee_cents,
                "net": self.net,
                "net_cents": self.net_cents,
            },
        }


class CoursePayout(models.Model):
    """
    Seller payout for one settled order.

    Unique on (order, course, seller): this constraint is what makes
    settlement idempotent under retries and concurrent webhooks.
    """

    STATUS_AVAILABLE = "available"
    STATUS_PENDING = "pending"
    STATUS_PAID = "paid"
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, _("Available")),
        (STATUS_PENDING, _("Pending")),
        (STATUS_PAID, _("Paid")),
    ]

    order = models.ForeignKey(CourseOrder, on_delete=models.PROTECT, related_name="payouts")
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="payouts")
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="course_payouts"
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    currency = models.CharField(max_length=3)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    unit_amount_cents = models.IntegerField(default=0)
    gross_amount_cents = models.IntegerField(default=0)
    commission_amount_cents = models.IntegerField(default=0)
    net_amount_cents = models.IntegerField(default=0)
    status = models.CharField(
        max_length=10, choices=STATUS_CHOICES, default=STATUS_AVAILABLE, db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Course Payout")
        verbose_name_plural = _("Course Payouts")
        ordering = ["-created_at"]
        db_table = "elearning_course_payout"
        constraints = [
            models.UniqueConstraint(
                fields=["order", "course", "seller"], name="uniq_course_payout_per_order"
            ),
        ]

    def __str__(self) -> str:
        return f"Payout #{self.pk} order={self.order_id} net={self.net_amount} {self.currency}"

    @property
    def unit_amount(self) -> Decimal:
        return cents_to_unit(self.unit_amount_cents)

    @property
    def gross_amount(self) -> Decimal:
        return cents_to_unit(self.gross_amount_cents)

    @property
    def commission_amount(self) -> Decimal:
        return cents_to_unit(self.commission_amount_cents)

    @property
    def net_amount(self) -> Decimal:
        return cents_to_unit(self.net_amount_cents)


class CourseCommission(models.Model):
    """Platform commission for one settled order (unique per order and course)."""

    order = models.ForeignKey(CourseOrder, on_delete=models.PROTECT, related_name="commissions")
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="commissions")
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    currency = models.CharField(max_length=3)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    commission_amount_cents = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Course Commission")
        verbose_name_plural = _("Course Commissions")
        ordering = ["-created_at"]
        db_table = "elearning_course_commission"
        constraints = [
            models.UniqueConstraint(
                fields=["order", "course"], name="uniq_course_commission_per_order"
            ),
        ]

    def __str__(self) -> str:
        return f"Commission #{self.pk} order={self.order_id} {self.commission_amount} {self.currency}"

    @property
    def commission_amount(self) -> Decimal:
        return cents_to_unit(self.commission_amount_cents)
