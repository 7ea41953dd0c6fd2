from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Community",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150, verbose_name="Name")),
                ("slug", models.SlugField(max_length=160, unique=True, verbose_name="Slug")),
            ],
            options={
                "verbose_name": "Community",
                "verbose_name_plural": "Communities",
                "db_table": "elearning_community",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Course",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200, verbose_name="Course Title")),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="Price")),
                (
                    "price_type",
                    models.CharField(
                        choices=[("free", "Free"), ("paid", "Paid")],
                        default="free",
                        max_length=10,
                        verbose_name="Price Type",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        blank=True,
                        help_text="ISO code, e.g. 'usd'. Empty uses DEFAULT_CURRENCY.",
                        max_length=3,
                        verbose_name="Currency",
                    ),
                ),
                ("cover_url", models.URLField(blank=True, max_length=500, verbose_name="Cover URL")),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("deleted_at", models.DateTimeField(blank=True, null=True, verbose_name="Deleted at")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "community",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="courses",
                        to="elearning.community",
                        verbose_name="Community",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        help_text="Seller who receives the payout for this course",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="owned_courses",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Owner",
                    ),
                ),
            ],
            options={
                "verbose_name": "Course",
                "verbose_name_plural": "Courses",
                "db_table": "elearning_course",
                "ordering": ["title"],
            },
        ),
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "seller_balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Sum of net payouts from course sales",
                        max_digits=12,
                        verbose_name="Seller Balance",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        help_text="Associated user account",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="User",
                    ),
                ),
            ],
            options={
                "verbose_name": "User Profile",
                "verbose_name_plural": "User Profiles",
                "db_table": "elearning_profile",
            },
        ),
        migrations.CreateModel(
            name="CourseEnrollment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("stripe_checkout", "Stripe Checkout"),
                            ("manual_crypto", "Manual crypto"),
                            ("free_enrollment", "Free enrollment"),
                            ("admin", "Admin"),
                        ],
                        default="admin",
                        max_length=20,
                        verbose_name="Source",
                    ),
                ),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="Checkout session id or manual payment reference",
                        max_length=255,
                        verbose_name="Reference",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="enrollments",
                        to="elearning.course",
                        verbose_name="Course",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="course_enrollments",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="User",
                    ),
                ),
            ],
            options={
                "verbose_name": "Course Enrollment",
                "verbose_name_plural": "Course Enrollments",
                "db_table": "elearning_course_enrollment",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user", "course"), name="uniq_course_enrollment_user_course"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CourseOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("course_title", models.CharField(blank=True, max_length=200, verbose_name="Course Title")),
                ("currency", models.CharField(max_length=3, verbose_name="Currency")),
                (
                    "unit_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=10, verbose_name="Unit Amount"
                    ),
                ),
                ("unit_amount_cents", models.IntegerField(default=0, verbose_name="Unit Amount (cents)")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("requires_payment", "Requires payment"),
                            ("succeeded", "Succeeded"),
                            ("canceled", "Canceled"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="requires_payment",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "method",
                    models.CharField(
                        choices=[("gateway", "Stripe Checkout"), ("manual", "Manual (crypto)"), ("free", "Free")],
                        default="gateway",
                        max_length=10,
                        verbose_name="Method",
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="Paid at")),
                ("deleted_at", models.DateTimeField(blank=True, null=True, verbose_name="Deleted at")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "checkout_session_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe Checkout Session id, or the manual payment reference",
                        max_length=255,
                        verbose_name="Checkout Session / Reference",
                    ),
                ),
                ("payment_intent_id", models.CharField(blank=True, db_index=True, max_length=255)),
                ("charge_id", models.CharField(blank=True, max_length=255)),
                ("receipt_url", models.URLField(blank=True, max_length=500)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("payment_method", models.JSONField(blank=True, default=dict)),
                ("settlement_currency", models.CharField(blank=True, max_length=3)),
                ("gross_amount_cents", models.IntegerField(blank=True, null=True)),
                ("fee_cents", models.IntegerField(blank=True, null=True)),
                ("net_cents", models.IntegerField(blank=True, null=True)),
                ("manual_note", models.TextField(blank=True)),
                ("manual_tx_hash", models.CharField(blank=True, max_length=255)),
                ("manual_decided_at", models.DateTimeField(blank=True, null=True)),
                (
                    "buyer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="course_orders",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Buyer",
                    ),
                ),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="elearning.course",
                        verbose_name="Course",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="course_sales",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Seller",
                    ),
                ),
            ],
            options={
                "verbose_name": "Course Order",
                "verbose_name_plural": "Course Orders",
                "db_table": "elearning_course_order",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["buyer", "course", "status"], name="course_order_buyer_idx")
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("unit_amount_cents__gte", 0)),
                        name="course_order_unit_amount_cents_gte_0",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status", "succeeded")),
                        fields=("buyer", "course"),
                        name="uniq_settled_course_order_per_buyer",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CoursePayout",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("currency", models.CharField(max_length=3)),
                ("commission_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("unit_amount_cents", models.IntegerField(default=0)),
                ("gross_amount_cents", models.IntegerField(default=0)),
                ("commission_amount_cents", models.IntegerField(default=0)),
                ("net_amount_cents", models.IntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("available", "Available"), ("pending", "Pending"), ("paid", "Paid")],
                        db_index=True,
                        default="available",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "buyer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to="elearning.course",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to="elearning.courseorder",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="course_payouts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Course Payout",
                "verbose_name_plural": "Course Payouts",
                "db_table": "elearning_course_payout",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "course", "seller"), name="uniq_course_payout_per_order"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CourseCommission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("currency", models.CharField(max_length=3)),
                ("commission_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("commission_amount_cents", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "buyer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commissions",
                        to="elearning.course",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commissions",
                        to="elearning.courseorder",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Course Commission",
                "verbose_name_plural": "Course Commissions",
                "db_table": "elearning_course_commission",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "course"), name="uniq_course_commission_per_order"
                    )
                ],
            },
        ),
    ]
