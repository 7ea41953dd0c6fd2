"""
E-Learning Application Django Admin Configuration

Django admin (Jazzmin) for the E-Learning models.

The admin interface is organized into logical sections:
- User Management: Users with their seller balance
- Course Catalog: Communities, courses and enrollments
- Course Marketplace: Orders, payouts and platform commissions

Orders, payouts and commissions are read-only here. The only write path is
the "confirm manual payment" action, which goes through the same settlement
code as the API.

Author: DSP Development Team
Version: 1.1.0
"""

from typing import Optional

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import User
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.translation import gettext_lazy as _

from elearning.payments.exceptions import CoursePaymentException
from elearning.payments.intake import confirm_manual_order

from .models import (
    Community,
    Course,
    CourseCommission,
    CourseEnrollment,
    CourseOrder,
    CoursePayout,
    Profile,
)

# --- User Management Administration ---


class ProfileInline(admin.StackedInline):
    model = Profile
    can_delete = False
    verbose_name_plural = "Profile Information"
    fk_name = "user"
    fields = ("seller_balance",)
    readonly_fields = ("seller_balance",)

    def get_extra(self, request: HttpRequest, obj: Optional[User] = None, **kwargs) -> int:
        """Return 0 extra forms since profile should exist or be created automatically."""
        return 0


class UserAdmin(BaseUserAdmin):
    """User administration with the marketplace profile inline."""

    inlines = (ProfileInline,)
    list_display = (
        "username",
        "email",
        "first_name",
        "last_name",
        "is_staff",
        "is_active",
        "get_seller_balance",
    )
    list_select_related = ("profile",)
    search_fields = ("username", "first_name", "last_name", "email")
    ordering = ("username",)

    @admin.display(description=_("Seller Balance"))
    def get_seller_balance(self, instance: User):
        try:
            return instance.profile.seller_balance
        except Profile.DoesNotExist:
            return None


admin.site.unregister(User)
admin.site.register(User, UserAdmin)

# --- Course Catalog Administration ---


@admin.register(Community)
class CommunityAdmin(admin.ModelAdmin):
    list_display = ("name", "slug")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "community", "price_type", "price", "currency", "is_active")
    list_filter = ("price_type", "is_active", "currency")
    search_fields = ("title", "owner__username")
    list_select_related = ("owner", "community")
    autocomplete_fields = ("owner",)


@admin.register(CourseEnrollment)
class CourseEnrollmentAdmin(admin.ModelAdmin):
    list_display = ("user", "course", "source", "reference", "created_at")
    list_filter = ("source",)
    search_fields = ("user__username", "course__title", "reference")
    list_select_related = ("user", "course")


# --- Course Marketplace Administration ---


class ReadOnlyAdminMixin:
    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    def has_delete_permission(self, request: HttpRequest, obj=None) -> bool:
        return False


class CoursePayoutInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = CoursePayout
    extra = 0
    fields = (
        "seller",
        "currency",
        "commission_rate",
        "gross_amount_cents",
        "commission_amount_cents",
        "net_amount_cents",
        "status",
    )
    readonly_fields = fields


@admin.register(CourseOrder)
class CourseOrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Read-only view of course orders.

    Manual (crypto) orders can be approved or rejected with the admin
    actions, which call ``confirm_manual_order``.
    """

    list_display = (
        "id",
        "course_title",
        "buyer",
        "seller",
        "method",
        "status",
        "unit_amount",
        "currency",
        "paid_at",
        "created_at",
    )
    list_filter = ("status", "method", "currency")
    search_fields = (
        "course_title",
        "buyer__username",
        "buyer__email",
        "checkout_session_id",
        "payment_intent_id",
        "manual_tx_hash",
    )
    list_select_related = ("buyer", "seller")
    inlines = [CoursePayoutInline]
    actions = ["approve_manual_payment", "reject_manual_payment"]
    date_hierarchy = "created_at"

    fieldsets = (
        (
            _("Order"),
            {
                "fields": (
                    "buyer",
                    "course",
                    "seller",
                    "course_title",
                    "currency",
                    "unit_amount",
                    "unit_amount_cents",
                    "status",
                    "method",
                    "paid_at",
                    "deleted_at",
                )
            },
        ),
        (
            _("Settlement"),
            {
                "fields": (
                    "checkout_session_id",
                    "payment_intent_id",
                    "charge_id",
                    "receipt_url",
                    "customer_email",
                    "payment_method",
                    "settlement_currency",
                    "gross_amount_cents",
                    "fee_cents",
                    "net_cents",
                )
            },
        ),
        (_("Manual Payment"), {"fields": ("manual_note", "manual_tx_hash", "manual_decided_at")}),
    )

    def get_readonly_fields(self, request: HttpRequest, obj=None):
        return [f.name for f in self.model._meta.fields]

    def _decide(self, request: HttpRequest, queryset: QuerySet, outcome: str) -> None:
        done = 0
        for order in queryset.filter(method=CourseOrder.METHOD_MANUAL):
            try:
                confirm_manual_order(order.pk, outcome, note=f"Admin: {request.user.get_username()}")
            except CoursePaymentException as e:
                self.message_user(request, f"#{order.pk}: {e.message}", level=messages.ERROR)
                continue
            done += 1
        self.message_user(request, _("%(count)d order(s) updated.") % {"count": done})

    @admin.action(description=_("Confirm manual payment"))
    def approve_manual_payment(self, request: HttpRequest, queryset: QuerySet) -> None:
        self._decide(request, queryset, "approved")

    @admin.action(description=_("Reject manual payment"))
    def reject_manual_payment(self, request: HttpRequest, queryset: QuerySet) -> None:
        self._decide(request, queryset, "rejected")


@admin.register(CoursePayout)
class CoursePayoutAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "order",
        "seller",
        "currency",
        "gross_amount",
        "commission_amount",
        "net_amount",
        "status",
        "created_at",
    )
    list_filter = ("status", "currency")
    search_fields = ("seller__username", "order__course_title")
    list_select_related = ("order", "seller")

    def get_readonly_fields(self, request: HttpRequest, obj=None):
        return [f.name for f in self.model._meta.fields]


@admin.register(CourseCommission)
class CourseCommissionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("id", "order", "seller", "currency", "commission_rate", "commission_amount", "created_at")
    list_filter = ("currency",)
    list_select_related = ("order", "seller")

    def get_readonly_fields(self, request: HttpRequest, obj=None):
        return [f.name for f in self.model._meta.fields]
