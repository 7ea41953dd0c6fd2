"""
E-Learning Course Catalog Models

This module defines the catalog side of paid course access. The settlement
engine treats these models as an external collaborator: courses are read
only, enrollments are only ever upserted.

Models:
- Community: Community a course is published in (display only)
- Course: Sellable course with owner, price and currency
- CourseEnrollment: Access grant for a (user, course) pair

Features:
- Soft delete and activation flag on courses
- Free and paid pricing types
- Unique (user, course) enrollment enforced by the database

Author: DSP Development Team
Version: 1.0.0
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Community(models.Model):
    """
    Community in which courses are published.

    Attributes:
        name: Display name
        slug: Unique URL slug
    """

    name = models.CharField(max_length=150, verbose_name=_("Name"))
    slug = models.SlugField(max_length=160, unique=True, verbose_name=_("Slug"))

    def __str__(self) -> str:
        return self.name

    class Meta:
        verbose_name = _("Community")
        verbose_name_plural = _("Communities")
        ordering = ["name"]
        db_table = "elearning_community"


class CourseQuerySet(models.QuerySet):
    def purchasable(self) -> "CourseQuerySet":
        """Courses that are neither soft-deleted nor deactivated."""
        return self.filter(deleted_at__isnull=True, is_active=True)


class Course(models.Model):
    """
    Sellable course owned by a seller.

    Attributes:
        title: Course title
        owner: Seller receiving the payout (nullable for legacy data)
        community: Optional community for display
        price: Unit price in ``currency``
        price_type: ``free`` or ``paid``
        currency: ISO currency code; blank means the platform default
        cover_url: Cover image for listings
        is_active: Deactivated courses cannot be bought
        deleted_at: Soft delete timestamp

    Example:
        >>> course = Course.objects.create(
        ...     title="Python für Einsteiger",
        ...     owner=seller,
        ...     price=Decimal("49.99"),
        ...     price_type=Course.PRICE_PAID,
        ... )
    """

    PRICE_FREE = "free"
    PRICE_PAID = "paid"
    PRICE_TYPE_CHOICES = [
        (PRICE_FREE, _("Free")),
        (PRICE_PAID, _("Paid")),
    ]

    title = models.CharField(max_length=200, verbose_name=_("Course Title"))
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="owned_courses",
        verbose_name=_("Owner"),
        help_text=_("Seller who receives the payout for this course"),
    )
    community = models.ForeignKey(
        Community,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="courses",
        verbose_name=_("Community"),
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        verbose_name=_("Price"),
    )
    price_type = models.CharField(
        max_length=10,
        choices=PRICE_TYPE_CHOICES,
        default=PRICE_FREE,
        verbose_name=_("Price Type"),
    )
    currency = models.CharField(
        max_length=3,
        blank=True,
        verbose_name=_("Currency"),
        help_text=_("ISO code, e.g. 'usd'. Empty uses DEFAULT_CURRENCY."),
    )
    cover_url = models.URLField(max_length=500, blank=True, verbose_name=_("Cover URL"))
    is_active = models.BooleanField(default=True, verbose_name=_("Active"))
    deleted_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Deleted at"))
    created_at = models.DateTimeField(auto_now_add=True)

    objects = CourseQuerySet.as_manager()

    def __str__(self) -> str:
        return self.title

    class Meta:
        verbose_name = _("Course")
        verbose_name_plural = _("Courses")
        ordering = ["title"]
        db_table = "elearning_course"

    @property
    def is_paid(self) -> bool:
        return self.price_type == self.PRICE_PAID


class CourseEnrollment(models.Model):
    """
    Access grant allowing a user to consume a course.

    Created by upsert only (``get_or_create``); the unique constraint on
    ``(user, course)`` is what makes concurrent grants safe.
    """

    SOURCE_CHECKOUT = "stripe_checkout"
    SOURCE_MANUAL = "manual_crypto"
    SOURCE_FREE = "free_enrollment"
    SOURCE_ADMIN = "admin"
    SOURCE_CHOICES = [
        (SOURCE_CHECKOUT, "Stripe Checkout"),
        (SOURCE_MANUAL, "Manual crypto"),
        (SOURCE_FREE, "Free enrollment"),
        (SOURCE_ADMIN, "Admin"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="course_enrollments",
        verbose_name=_("User"),
    )
    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="enrollments",
        verbose_name=_("Course"),
    )
    source = models.CharField(
        max_length=20, choices=SOURCE_CHOICES, default=SOURCE_ADMIN, verbose_name=_("Source")
    )
    reference = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Reference"),
        help_text=_("Checkout session id or manual payment reference"),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.user} → {self.course}"

    class Meta:
        verbose_name = _("Course Enrollment")
        verbose_name_plural = _("Course Enrollments")
        db_table = "elearning_course_enrollment"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "course"], name="uniq_course_enrollment_user_course"
            ),
        ]

    @classmethod
    def is_enrolled(cls, user_id, course_id) -> bool:
        return cls.objects.filter(user_id=user_id, course_id=course_id).exists()
