"""
Course Payment Views (elearning.payments)
=========================================

REST API for buying courses. All endpoints live under
``/api/elearning/payments/courses/`` and require a JWT.

Endpoints
---------

1. CourseCheckoutView
   - URL: <course_id>/checkout/
   - Method: POST
   - Body: {"method": "gateway" | "manual", "network"?: "USDT", "customer_email"?: "..."}
   - Purpose:
       Creates a course order. Gateway orders return the Stripe Checkout
       redirect URL, manual orders return a payment reference.

2. CourseFreeEnrollView
   - URL: <course_id>/enroll/
   - Method: POST
   - Purpose: Enroll in a free course (zero-amount order).

3. CourseOrderRefreshView
   - URL: refresh/
   - Method: POST
   - Body: {"order_id" | "session_id" | "payment_intent_id"}
   - Purpose:
       Reconciles the order with Stripe. Called by the frontend on the
       success page, before (or instead of) the webhook.

4. MyCourseOrdersView / CourseOrderDetailView
   - URL: mine/?page&limit, orders/<order_id>/
   - Method: GET

5. MyCoursePayoutsView / MyCoursePayoutSummaryView
   - URL: payouts/mine/?page&limit&status&currency, payouts/mine/summary/
   - Method: GET
   - Purpose: Seller view of earned payouts.

6. PendingManualOrdersView / ConfirmManualOrderView (staff only)
   - URL: manual/pending/, manual/<order_id>/confirm/
   - Body: {"outcome": "approved" | "rejected" | ..., "note"?: "", "tx_hash"?: ""}

Errors
------
Every domain error is returned as ``{"kind": "...", "message": "..."}`` with
the status code of the raised ``CoursePaymentException``.

Author: DSP Development Team
Date: 2025-10-02
"""

import logging

from django.db.models import Count, Q, Sum
from rest_framework import status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.stripe_integration.gateway import StripeSettlementGateway
from elearning.payments.checkout import CourseCheckout
from elearning.payments.exceptions import CoursePaymentException
from elearning.payments.intake import confirm_manual_order, locate_order, refresh_course_order
from elearning.payments.models import CourseOrder, CoursePayout
from elearning.payments.money import cents_to_unit
from elearning.payments.serializers import (
    CheckoutRequestSerializer,
    CourseOrderSerializer,
    CoursePayoutSerializer,
    ManualConfirmSerializer,
    ManualOrderSerializer,
    RefreshRequestSerializer,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


def _int_param(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def paginate(queryset, request):
    """Return ``(rows, meta)`` for ``?page&limit`` (limit capped at 50)."""
    page = max(_int_param(request.query_params.get("page"), 1), 1)
    limit = min(max(_int_param(request.query_params.get("limit"), DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    offset = (page - 1) * limit
    total = queryset.count()
    rows = list(queryset[offset : offset + limit])
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "has_more": offset + len(rows) < total,
    }


def error_response(exc: CoursePaymentException) -> Response:
    return Response(exc.to_dict(), status=exc.status_code)


class CourseCheckoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, course_id: int):
        body = CheckoutRequestSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data

        try:
            result = CourseCheckout.from_settings().start_checkout(
                request.user,
                course_id,
                data.get("method"),
                network=data.get("network") or None,
                customer_email=data.get("customer_email") or None,
            )
        except CoursePaymentException as e:
            return error_response(e)

        if result.is_manual:
            payload = {"order_id": result.order.pk, "reference": result.reference, "manual": True}
        else:
            payload = {"order_id": result.order.pk, "redirect_url": result.redirect_url}
        return Response(payload, status=status.HTTP_201_CREATED)


class CourseFreeEnrollView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, course_id: int):
        try:
            order = CourseCheckout.from_settings().enroll_free(request.user, course_id)
        except CoursePaymentException as e:
            return error_response(e)
        return Response(CourseOrderSerializer(order).data, status=status.HTTP_200_OK)


class CourseOrderRefreshView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        body = RefreshRequestSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data

        try:
            order = locate_order(
                order_id=data.get("order_id"),
                session_id=data.get("session_id") or None,
                payment_intent_id=data.get("payment_intent_id") or None,
                buyer=request.user,
            )
            order = refresh_course_order(
                order,
                gateway=StripeSettlementGateway(),
                session_id=data.get("session_id") or None,
                payment_intent_id=data.get("payment_intent_id") or None,
            )
        except CoursePaymentException as e:
            return error_response(e)

        projection = CourseOrderSerializer(order).data
        return Response({"order": projection, "enrolled": projection["enrolled"]})


class MyCourseOrdersView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = (
            CourseOrder.objects.alive()
            .filter(buyer=request.user)
            .select_related("course", "course__community")
            .order_by("-created_at")
        )
        rows, meta = paginate(qs, request)
        return Response({"items": CourseOrderSerializer(rows, many=True).data, **meta})


class CourseOrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, order_id: int):
        try:
            order = locate_order(order_id=order_id, buyer=request.user)
        except CoursePaymentException as e:
            return error_response(e)
        return Response(CourseOrderSerializer(order).data)


class MyCoursePayoutsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = CoursePayout.objects.filter(seller=request.user).select_related("order")

        payout_status = (request.query_params.get("status") or "").lower()
        if payout_status in {choice for choice, _label in CoursePayout.STATUS_CHOICES}:
            qs = qs.filter(status=payout_status)

        currency = (request.query_params.get("currency") or "").lower()
        if currency:
            qs = qs.filter(currency=currency)

        rows, meta = paginate(qs.order_by("-created_at"), request)
        return Response({"items": CoursePayoutSerializer(rows, many=True).data, **meta})


class MyCoursePayoutSummaryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        rows = (
            CoursePayout.objects.filter(seller=request.user)
            .values("currency")
            .annotate(
                available=Sum("net_amount_cents", filter=Q(status=CoursePayout.STATUS_AVAILABLE)),
                pending=Sum("net_amount_cents", filter=Q(status=CoursePayout.STATUS_PENDING)),
                paid_lifetime=Sum("net_amount_cents", filter=Q(status=CoursePayout.STATUS_PAID)),
                gross_lifetime=Sum("gross_amount_cents"),
                commission_lifetime=Sum("commission_amount_cents"),
                count=Count("id"),
            )
            .order_by("currency")
        )
        summary = [
            {
                "currency": row["currency"],
                "available": cents_to_unit(row["available"]),
                "pending": cents_to_unit(row["pending"]),
                "paid_lifetime": cents_to_unit(row["paid_lifetime"]),
                "gross_lifetime": cents_to_unit(row["gross_lifetime"]),
                "commission_lifetime": cents_to_unit(row["commission_lifetime"]),
                "count": row["count"],
            }
            for row in rows
        ]
        return Response({"summary": summary})


class PendingManualOrdersView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        qs = (
            CourseOrder.objects.pending_manual()
            .select_related("buyer", "course", "course__community")
            .order_by("created_at")
        )
        rows, meta = paginate(qs, request)
        return Response({"items": ManualOrderSerializer(rows, many=True).data, **meta})


class ConfirmManualOrderView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request, order_id: int):
        body = ManualConfirmSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data

        try:
            order = confirm_manual_order(
                order_id, data["outcome"], note=data["note"], tx_hash=data["tx_hash"]
            )
        except CoursePaymentException as e:
            return error_response(e)

        logger.info(
            "Manual order %s decided by %s: %s", order.pk, request.user.pk, data["outcome"]
        )
        return Response(ManualOrderSerializer(order).data)
