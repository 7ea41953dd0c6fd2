"""
Payout Ledger

Creates the seller payout and the platform commission for a settled course
order, and credits the seller balance. Safe to call any number of times for
the same order: the unique constraints on ``CoursePayout`` and
``CourseCommission`` guarantee that only one caller ever writes, and the
balance credit runs in the same atomic block as those inserts.

Author: DSP Development Team
Date: 2025-10-02
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction

from elearning.payments.models import CourseCommission, CourseOrder, CoursePayout
from elearning.payments.money import cents_to_unit, percent_of
from elearning.users.models import Profile

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_PCT = Decimal(20)


@dataclass(frozen=True)
class PayoutSplit:
    gross_cents: int
    commission_cents: int
    net_cents: int


class PayoutLedger:
    """
    Idempotent payout writer.

    Args:
        commission_pct: Platform commission in percent, clamped to 0..100

    Example:
        >>> ledger = PayoutLedger(5)
        >>> ledger.split(4999)
        PayoutSplit(gross_cents=4999, commission_cents=250, net_cents=4749)
    """

    def __init__(self, commission_pct=DEFAULT_COMMISSION_PCT):
        rate = Decimal(str(commission_pct))
        self.commission_pct = min(max(rate, Decimal(0)), Decimal(100))

    @classmethod
    def from_settings(cls) -> "PayoutLedger":
        return cls(getattr(settings, "COURSE_COMMISSION_PCT", DEFAULT_COMMISSION_PCT))

    def split(self, gross_cents: int) -> PayoutSplit:
        gross = int(gross_cents or 0)
        commission = percent_of(gross, self.commission_pct)
        return PayoutSplit(gross_cents=gross, commission_cents=commission, net_cents=gross - commission)

    def _find_existing_payout(self, order: CourseOrder) -> Optional[CoursePayout]:
        return CoursePayout.objects.filter(
            order=order, course_id=order.course_id, seller_id=order.seller_id
        ).first()

    def settle_order(self, order: CourseOrder) -> Optional[CoursePayout]:
        """
        Write the payout and commission for a succeeded order.

        Returns:
            The payout for this order (new or pre-existing), or ``None``
            when the order is not eligible for a payout.
        """
        if order.status != CourseOrder.STATUS_SUCCEEDED:
            return None

        if not order.seller_id or order.seller_id == order.buyer_id:
            logger.warning(
                "Skipping payout for order %s: seller=%s buyer=%s",
                order.pk,
                order.seller_id,
                order.buyer_id,
            )
            return None

        existing = self._find_existing_payout(order)
        if existing is not None:
            return existing

        # Charged amount and currency are frozen on the order; the gateway
        # settlement snapshot is informational only.
        split = self.split(order.unit_amount_cents)
        currency = (order.currency or "").lower()

        try:
            with transaction.atomic():
                payout = CoursePayout.objects.create(
                    order=order,
                    course_id=order.course_id,
                    seller_id=order.seller_id,
                    buyer_id=order.buyer_id,
                    currency=currency,
                    commission_rate=self.commission_pct,
                    unit_amount_cents=order.unit_amount_cents,
                    gross_amount_cents=split.gross_cents,
                    commission_amount_cents=split.commission_cents,
                    net_amount_cents=split.net_cents,
                )
                CourseCommission.objects.create(
                    order=order,
                    course_id=order.course_id,
                    seller_id=order.seller_id,
                    buyer_id=order.buyer_id,
                    currency=currency,
                    commission_rate=self.commission_pct,
                    commission_amount_cents=split.commission_cents,
                )
                Profile.credit_seller_balance(order.seller_id, cents_to_unit(split.net_cents))
        except IntegrityError:
            logger.info("Payout for order %s already written by a concurrent settlement", order.pk)
            return CoursePayout.objects.get(
                order=order, course_id=order.course_id, seller_id=order.seller_id
            )

        logger.info(
            "Payout %s created for order %s: gross=%s commission=%s net=%s %s",
            payout.pk,
            order.pk,
            split.gross_cents,
            split.commission_cents,
            split.net_cents,
            currency,
        )
        return payout
