from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import TestCase
from django.utils import timezone

from core.stripe_integration.gateway import CheckoutSessionDetail, PaymentDetail
from elearning.payments.exceptions import InvalidManualOutcome
from elearning.payments.hydration import apply_manual_outcome, hydrate, normalize_manual_outcome
from elearning.payments.models import CourseOrder

from .factories import (
    CHARGE_CREATED,
    fake_gateway,
    make_course,
    make_order,
    make_user,
    payment_payload,
    session_payload,
)


class HydrateTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.seller = make_user("seller")
        cls.buyer = make_user("buyer")
        cls.course = make_course(cls.seller)

    def setUp(self):
        self.order = make_order(self.buyer, self.course)

    def test_paid_session_with_balance_breakdown(self):
        session = CheckoutSessionDetail.from_stripe(session_payload(order=self.order))
        payment = PaymentDetail.from_stripe(payment_payload())

        hydrate(self.order, session, payment)

        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(self.order.gross_amount_cents, 4999)
        self.assertEqual(self.order.fee_cents, 175)
        self.assertEqual(self.order.net_cents, 4824)
        self.assertEqual(self.order.settlement_currency, "usd")
        self.assertEqual(self.order.payment_intent_id, "pi_test_1")
        self.assertEqual(self.order.charge_id, "ch_test_1")
        self.assertEqual(self.order.customer_email, "buyer@test.com")
        self.assertEqual(self.order.payment_method["last4"], "4242")
        self.assertEqual(
            self.order.paid_at, datetime.fromtimestamp(CHARGE_CREATED, tz=dt_timezone.utc)
        )

    def test_success_is_one_way(self):
        paid_at = timezone.now() - timedelta(days=1)
        self.order.status = CourseOrder.STATUS_SUCCEEDED
        self.order.paid_at = paid_at

        later_inputs = [
            (CheckoutSessionDetail.from_stripe(session_payload(status="expired", payment_status="unpaid")), None),
            (None, PaymentDetail.from_stripe(payment_payload(status="canceled"))),
            (None, PaymentDetail.from_stripe(payment_payload(status="requires_payment_method"))),
            (None, None),
        ]
        for session, payment in later_inputs:
            with self.subTest(session=session, payment=payment):
                hydrate(self.order, session, payment)
                self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
                self.assertEqual(self.order.paid_at, paid_at)

    def test_expired_session_cancels_open_order(self):
        session = CheckoutSessionDetail.from_stripe(
            session_payload(status="expired", payment_status="unpaid", payment_intent=None)
        )

        hydrate(self.order, session)

        self.assertEqual(self.order.status, CourseOrder.STATUS_CANCELED)
        self.assertIsNone(self.order.paid_at)

    def test_open_session_keeps_requires_payment(self):
        session = CheckoutSessionDetail.from_stripe(
            session_payload(status="open", payment_status="unpaid", payment_intent=None)
        )

        hydrate(self.order, session)

        self.assertEqual(self.order.status, CourseOrder.STATUS_REQUIRES_PAYMENT)
        self.assertEqual(self.order.gross_amount_cents, 4999)

    def test_missing_values_never_erase_stored_ones(self):
        self.order.charge_id = "ch_old"
        self.order.receipt_url = "https://pay.stripe.com/receipts/ch_old"
        self.order.fee_cents = 100
        session = CheckoutSessionDetail.from_stripe(
            session_payload(payment_status="unpaid", status="open", payment_intent=None, email=None)
        )

        hydrate(self.order, session)

        self.assertEqual(self.order.charge_id, "ch_old")
        self.assertEqual(self.order.receipt_url, "https://pay.stripe.com/receipts/ch_old")
        self.assertEqual(self.order.fee_cents, 100)
        self.assertEqual(self.order.net_cents, 4899)

    def test_payment_resolved_through_gateway(self):
        gateway = fake_gateway(payment=payment_payload())
        session = CheckoutSessionDetail.from_stripe(session_payload(order=self.order))
        self.assertIsNone(session.payment)

        hydrate(self.order, session, gateway=gateway)

        gateway.retrieve_payment_detail.assert_called_once_with("pi_test_1")
        self.assertEqual(self.order.fee_cents, 175)
        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)

    def test_gateway_error_means_session_data_only(self):
        gateway = fake_gateway(payment=None)
        session = CheckoutSessionDetail.from_stripe(session_payload(order=self.order))

        hydrate(self.order, session, gateway=gateway)

        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertIsNone(self.order.fee_cents)
        self.assertEqual(self.order.gross_amount_cents, 4999)
        self.assertIsNotNone(self.order.paid_at)

    def test_payment_without_charge_uses_stored_fee(self):
        self.order.fee_cents = 100
        payment = PaymentDetail.from_stripe(payment_payload(amount=5000, expanded=False))

        hydrate(self.order, None, payment)

        self.assertEqual(self.order.gross_amount_cents, 5000)
        self.assertEqual(self.order.net_cents, 4900)
        self.assertEqual(self.order.charge_id, "ch_test_1")


class ManualOutcomeTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.seller = make_user("seller")
        cls.buyer = make_user("buyer")
        cls.course = make_course(cls.seller)

    def test_normalize_variants(self):
        cases = {
            "approved": CourseOrder.STATUS_SUCCEEDED,
            "Paid": CourseOrder.STATUS_SUCCEEDED,
            " success ": CourseOrder.STATUS_SUCCEEDED,
            "rejected": CourseOrder.STATUS_FAILED,
            "failed": CourseOrder.STATUS_FAILED,
            "cancelled": CourseOrder.STATUS_CANCELED,
            "canceled": CourseOrder.STATUS_CANCELED,
        }
        for outcome, expected in cases.items():
            with self.subTest(outcome=outcome):
                self.assertEqual(normalize_manual_outcome(outcome), expected)

    def test_unknown_outcome(self):
        with self.assertRaises(InvalidManualOutcome) as ctx:
            normalize_manual_outcome("maybe")
        self.assertEqual(ctx.exception.kind, "invalid_outcome")

    def test_success_sets_net_equal_to_gross(self):
        order = make_order(self.buyer, self.course, method=CourseOrder.METHOD_MANUAL)

        apply_manual_outcome(order, "approved")

        self.assertEqual(order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(order.gross_amount_cents, 4999)
        self.assertEqual(order.net_cents, 4999)
        self.assertIsNone(order.fee_cents)
        self.assertIsNotNone(order.paid_at)

    def test_succeeded_order_is_not_reverted(self):
        order = make_order(
            self.buyer, self.course, method=CourseOrder.METHOD_MANUAL, status=CourseOrder.STATUS_SUCCEEDED
        )

        apply_manual_outcome(order, "rejected")

        self.assertEqual(order.status, CourseOrder.STATUS_SUCCEEDED)
