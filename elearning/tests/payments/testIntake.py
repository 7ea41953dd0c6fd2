"""
Event intake tests: refresh, Stripe webhook events and operator
confirmation of manual payments.
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

from django.core import mail
from django.test import TestCase

from core.stripe_integration import signals
from elearning.courses.models import CourseEnrollment
from elearning.payments.exceptions import InvalidManualOutcome, NotManualOrder, OrderNotFound
from elearning.payments.intake import (
    confirm_manual_order,
    handle_gateway_event,
    locate_order,
    persist_and_settle,
    refresh_course_order,
)
from elearning.payments.models import CourseCommission, CourseOrder, CoursePayout
from elearning.users.models import Profile

from .factories import fake_gateway, make_course, make_order, make_user, payment_payload, session_payload


class IntakeTestCase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.seller = make_user("seller")
        cls.buyer = make_user("buyer")
        cls.course = make_course(cls.seller)

    def balance(self):
        return Profile.objects.get(user=self.seller).seller_balance


class LocateOrderTests(IntakeTestCase):
    def setUp(self):
        self.order = make_order(self.buyer, self.course, payment_intent_id="pi_test_1")

    def test_any_reference_is_enough(self):
        self.assertEqual(locate_order(order_id=self.order.pk), self.order)
        self.assertEqual(locate_order(session_id="cs_test_1"), self.order)
        self.assertEqual(locate_order(payment_intent_id="pi_test_1"), self.order)

    def test_scoped_to_buyer(self):
        other = make_user("other")
        with self.assertRaises(OrderNotFound):
            locate_order(order_id=self.order.pk, buyer=other)

    def test_nothing_given(self):
        with self.assertRaises(OrderNotFound) as ctx:
            locate_order()
        self.assertEqual(ctx.exception.status_code, 404)


class RefreshCourseOrderTests(IntakeTestCase):
    def setUp(self):
        self.order = make_order(self.buyer, self.course)
        self.gateway = fake_gateway(session=session_payload(order=self.order), payment=payment_payload())

    def test_paid_session_settles_once(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            refresh_course_order(self.order, gateway=self.gateway)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(self.order.net_cents, 4824)
        self.assertEqual(CoursePayout.objects.filter(order=self.order).count(), 1)
        enrollment = CourseEnrollment.objects.get(user=self.buyer, course=self.course)
        self.assertEqual(enrollment.source, CourseEnrollment.SOURCE_CHECKOUT)
        self.assertEqual(enrollment.reference, "cs_test_1")
        # default 20 %: 4999 - 1000
        self.assertEqual(self.balance(), Decimal("39.99"))

        self.assertEqual(len(callbacks), 2)
        recipients = sorted(m.to[0] for m in mail.outbox)
        self.assertEqual(recipients, ["buyer@test.com", "seller@test.com"])

    def test_repeated_refresh_is_idempotent(self):
        refresh_course_order(self.order, gateway=self.gateway)

        with self.captureOnCommitCallbacks() as callbacks:
            for _ in range(3):
                order = CourseOrder.objects.get(pk=self.order.pk)
                refresh_course_order(order, gateway=self.gateway)

        self.assertEqual(len(callbacks), 0)
        self.assertEqual(CoursePayout.objects.count(), 1)
        self.assertEqual(CourseCommission.objects.count(), 1)
        self.assertEqual(CourseEnrollment.objects.count(), 1)
        self.assertEqual(self.balance(), Decimal("39.99"))

    def test_gateway_outage_leaves_order_unchanged(self):
        gateway = fake_gateway(session=None, payment=None)

        refresh_course_order(self.order, gateway=gateway)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_REQUIRES_PAYMENT)
        self.assertIsNone(self.order.gross_amount_cents)

    def test_expired_session_cancels(self):
        gateway = fake_gateway(
            session=session_payload(
                order=self.order, status="expired", payment_status="unpaid", payment_intent=None
            )
        )

        refresh_course_order(self.order, gateway=gateway)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_CANCELED)
        self.assertFalse(CoursePayout.objects.exists())

    def test_manual_order_is_returned_as_is(self):
        manual = make_order(self.buyer, self.course, method=CourseOrder.METHOD_MANUAL)

        result = refresh_course_order(manual, gateway=self.gateway)

        self.assertIs(result, manual)
        self.gateway.retrieve_settlement_detail.assert_not_called()


class PersistAndSettleTests(IntakeTestCase):
    def test_stored_success_is_never_overwritten(self):
        order = make_order(self.buyer, self.course, status=CourseOrder.STATUS_SUCCEEDED, gross_amount_cents=4999)
        stale = CourseOrder.objects.get(pk=order.pk)
        stale.status = CourseOrder.STATUS_CANCELED

        persist_and_settle(stale)

        order.refresh_from_db()
        self.assertEqual(order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(CoursePayout.objects.filter(order=order).count(), 1)

    def test_second_settled_order_for_same_pair_is_left_for_operator(self):
        first = make_order(self.buyer, self.course, status=CourseOrder.STATUS_SUCCEEDED)
        persist_and_settle(first)
        second = make_order(self.buyer, self.course, checkout_session_id="cs_test_2")
        second.status = CourseOrder.STATUS_SUCCEEDED

        with self.assertLogs("elearning.payments.intake", level="ERROR"):
            persist_and_settle(second)

        self.assertEqual(second.status, CourseOrder.STATUS_REQUIRES_PAYMENT)
        self.assertEqual(CoursePayout.objects.count(), 1)


class GatewayEventTests(IntakeTestCase):
    def setUp(self):
        self.order = make_order(self.buyer, self.course)
        self.metadata = session_payload(order=self.order)["metadata"]

    def test_checkout_session_completed(self):
        gateway = fake_gateway(payment=payment_payload())

        result = handle_gateway_event(
            "checkout.session.completed", session_payload(order=self.order), gateway=gateway
        )

        self.assertEqual(result.pk, self.order.pk)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(self.order.fee_cents, 175)
        gateway.retrieve_payment_detail.assert_called_with("pi_test_1")

    def test_payment_intent_succeeded_fetches_charge(self):
        gateway = fake_gateway(payment=payment_payload(metadata=self.metadata))
        payload = payment_payload(metadata=self.metadata, expanded=False)

        handle_gateway_event("payment_intent.succeeded", payload, gateway=gateway)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(self.order.payment_intent_id, "pi_test_1")
        self.assertEqual(self.order.net_cents, 4824)

    def test_duplicate_events_settle_once(self):
        gateway = fake_gateway(payment=payment_payload())
        for _ in range(2):
            handle_gateway_event(
                "checkout.session.completed", session_payload(order=self.order), gateway=gateway
            )
        handle_gateway_event(
            "payment_intent.succeeded", payment_payload(metadata=self.metadata), gateway=gateway
        )

        self.assertEqual(CoursePayout.objects.count(), 1)
        self.assertEqual(CourseEnrollment.objects.count(), 1)

    def test_late_expiry_does_not_revert_success(self):
        gateway = fake_gateway(payment=payment_payload())
        handle_gateway_event("checkout.session.completed", session_payload(order=self.order), gateway=gateway)

        handle_gateway_event(
            "checkout.session.expired",
            session_payload(order=self.order, status="expired", payment_status="unpaid"),
            gateway=fake_gateway(),
        )

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)

    def test_session_expired(self):
        handle_gateway_event(
            "checkout.session.expired",
            session_payload(order=self.order, status="expired", payment_status="unpaid", payment_intent=None),
            gateway=fake_gateway(),
        )

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_CANCELED)

    def test_async_payment_failed(self):
        gateway = fake_gateway(payment=payment_payload(status="requires_payment_method"))

        handle_gateway_event(
            "checkout.session.async_payment_failed",
            session_payload(order=self.order, payment_status="unpaid"),
            gateway=gateway,
        )

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_FAILED)
        self.assertFalse(CourseEnrollment.objects.exists())

    def test_non_course_objects_are_ignored(self):
        payload = session_payload()
        payload["metadata"] = {"feature": "subscription", "course_order_id": str(self.order.pk)}

        self.assertIsNone(handle_gateway_event("checkout.session.completed", payload, gateway=fake_gateway()))
        self.assertIsNone(handle_gateway_event("invoice.paid", session_payload(order=self.order), gateway=fake_gateway()))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_REQUIRES_PAYMENT)

    def test_unknown_order_is_skipped(self):
        payload = session_payload(session_id="cs_unknown", order=self.order, payment_intent=None)
        payload["metadata"]["course_order_id"] = "999999"

        with self.assertLogs("elearning.payments.intake", level="WARNING"):
            result = handle_gateway_event("checkout.session.completed", payload, gateway=fake_gateway())

        self.assertIsNone(result)


class ConfirmManualOrderTests(IntakeTestCase):
    def setUp(self):
        self.order = make_order(
            self.buyer, self.course, method=CourseOrder.METHOD_MANUAL, checkout_session_id="REF-1700000000000-42"
        )

    def test_manual_success(self):
        with self.captureOnCommitCallbacks(execute=True):
            confirm_manual_order(self.order.pk, "approved", note="Eingang geprüft", tx_hash="0xabc")

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(self.order.gross_amount_cents, 4999)
        self.assertEqual(self.order.net_cents, self.order.gross_amount_cents)
        self.assertIsNone(self.order.fee_cents)
        self.assertEqual(self.order.manual_tx_hash, "0xabc")
        self.assertIsNotNone(self.order.manual_decided_at)

        enrollment = CourseEnrollment.objects.get(user=self.buyer, course=self.course)
        self.assertEqual(enrollment.source, CourseEnrollment.SOURCE_MANUAL)
        self.assertEqual(enrollment.reference, "REF-1700000000000-42")
        self.assertEqual(CoursePayout.objects.get(order=self.order).gross_amount_cents, 4999)
        self.assertEqual(len(mail.outbox), 2)

    def test_second_confirmation_is_a_no_op(self):
        confirm_manual_order(self.order.pk, "approved")
        decided_at = CourseOrder.objects.get(pk=self.order.pk).manual_decided_at

        with self.captureOnCommitCallbacks() as callbacks:
            confirm_manual_order(self.order.pk, "rejected")

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_SUCCEEDED)
        self.assertEqual(self.order.manual_decided_at, decided_at)
        self.assertEqual(len(callbacks), 0)
        self.assertEqual(CoursePayout.objects.count(), 1)
        self.assertEqual(CourseEnrollment.objects.count(), 1)

    def test_rejection_notifies_buyer(self):
        with self.captureOnCommitCallbacks(execute=True):
            confirm_manual_order(self.order.pk, "rejected", note="Betrag zu niedrig")

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_FAILED)
        self.assertFalse(CourseEnrollment.objects.exists())
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["buyer@test.com"])
        self.assertIn("Betrag zu niedrig", mail.outbox[0].body)

    def test_gateway_order_cannot_be_confirmed(self):
        gateway_order = make_order(self.buyer, self.course)

        with self.assertRaises(NotManualOrder):
            confirm_manual_order(gateway_order.pk, "approved")

    def test_invalid_outcome(self):
        with self.assertRaises(InvalidManualOutcome):
            confirm_manual_order(self.order.pk, "vielleicht")

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, CourseOrder.STATUS_REQUIRES_PAYMENT)


class WebhookSignalTests(IntakeTestCase):
    def _event(self, event_type, obj):
        return SimpleNamespace(type=event_type, id="evt_test_1", data={"data": {"object": obj}})

    def test_extract_data_object(self):
        obj = {"id": "cs_test_1"}
        self.assertEqual(signals._extract_data_object(SimpleNamespace(data={"data": {"object": obj}})), obj)
        self.assertEqual(signals._extract_data_object(SimpleNamespace(data={"object": obj})), obj)
        self.assertEqual(signals._extract_data_object(SimpleNamespace(data=None)), {})

    def test_new_event_is_dispatched(self):
        order = make_order(self.buyer, self.course)
        gateway = fake_gateway(payment=payment_payload())

        with mock.patch("core.stripe_integration.gateway.StripeSettlementGateway", return_value=gateway):
            signals.on_djstripe_event_created(
                sender=None,
                instance=self._event("checkout.session.completed", session_payload(order=order)),
                created=True,
            )

        order.refresh_from_db()
        self.assertEqual(order.status, CourseOrder.STATUS_SUCCEEDED)

    def test_existing_event_is_skipped(self):
        with mock.patch.object(signals, "dispatch_event") as dispatch:
            signals.on_djstripe_event_created(
                sender=None, instance=self._event("checkout.session.completed", {}), created=False
            )
        dispatch.assert_not_called()

    def test_errors_are_never_reraised(self):
        with mock.patch.object(signals, "dispatch_event", side_effect=RuntimeError("boom")):
            with self.assertLogs("core.stripe_integration.signals", level="ERROR"):
                signals.on_djstripe_event_created(
                    sender=None, instance=self._event("payment_intent.succeeded", {}), created=True
                )
