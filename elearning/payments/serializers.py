from rest_framework import serializers

from elearning.courses.models import CourseEnrollment
from elearning.payments.hydration import MANUAL_OUTCOMES
from elearning.payments.models import CourseOrder, CoursePayout


# ---------- request bodies ----------


class CheckoutRequestSerializer(serializers.Serializer):
    method = serializers.CharField(required=False, default=CourseOrder.METHOD_GATEWAY)
    network = serializers.CharField(required=False, allow_blank=True, max_length=40)
    customer_email = serializers.EmailField(required=False, allow_blank=True)


class RefreshRequestSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(required=False)
    session_id = serializers.CharField(required=False, allow_blank=True)
    payment_intent_id = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not (attrs.get("order_id") or attrs.get("session_id") or attrs.get("payment_intent_id")):
            raise serializers.ValidationError(
                "One of order_id, session_id or payment_intent_id is required."
            )
        return attrs


class ManualConfirmSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=sorted(MANUAL_OUTCOMES))
    note = serializers.CharField(required=False, allow_blank=True, default="")
    tx_hash = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


# ---------- projections ----------


class CourseOrderSerializer(serializers.ModelSerializer):
    """Order projection returned by every buyer-facing endpoint."""

    course = serializers.SerializerMethodField()
    settlement = serializers.SerializerMethodField()
    amounts = serializers.SerializerMethodField()
    enrolled = serializers.SerializerMethodField()

    class Meta:
        model = CourseOrder
        fields = [
            "id",
            "status",
            "method",
            "paid_at",
            "created_at",
            "course",
            "settlement",
            "amounts",
            "enrolled",
        ]

    def get_course(self, obj):
        course = obj.course
        community = course.community
        return {
            "id": course.pk,
            "title": course.title or obj.course_title,
            "cover_url": course.cover_url or None,
            "community": (
                {"id": community.pk, "name": community.name, "slug": community.slug}
                if community
                else None
            ),
        }

    def get_settlement(self, obj):
        return obj.settlement_summary()

    def get_amounts(self, obj):
        return {
            "currency": obj.currency,
            "amount": obj.unit_amount,
            "amount_cents": obj.unit_amount_cents,
        }

    def get_enrolled(self, obj):
        return CourseEnrollment.is_enrolled(obj.buyer_id, obj.course_id)


class ManualOrderSerializer(CourseOrderSerializer):
    buyer = serializers.SerializerMethodField()

    class Meta(CourseOrderSerializer.Meta):
        fields = CourseOrderSerializer.Meta.fields + ["buyer", "manual_note", "manual_tx_hash"]

    def get_buyer(self, obj):
        return {"id": obj.buyer_id, "username": obj.buyer.get_username(), "email": obj.buyer.email}


class CoursePayoutSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source="order.course_title", read_only=True)
    gross_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    commission_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    net_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CoursePayout
        fields = [
            "id",
            "order",
            "course",
            "course_title",
            "buyer",
            "currency",
            "commission_rate",
            "gross_amount_cents",
            "commission_amount_cents",
            "net_amount_cents",
            "gross_amount",
            "commission_amount",
            "net_amount",
            "status",
            "created_at",
        ]
