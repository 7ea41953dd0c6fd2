"""
E-Learning User Profile Models

This module extends Django's built-in User model with the profile data the
course marketplace needs, most importantly the seller balance that course
payouts are credited to.

Models:
- Profile: Per-user marketplace data (seller balance)

Features:
- Automatic profile creation for new users
- Atomic seller balance increments (``UPDATE ... SET x = x + n``)

Author: DSP Development Team
Version: 1.1.0
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)


class Profile(models.Model):
    """
    Extended user profile for the E-Learning marketplace.

    Attributes:
        user: One-to-one relationship with Django User model
        seller_balance: Running total of net course payouts (unit amount)

    The profile is automatically created when a new user is registered.
    The balance is only ever changed through ``credit_seller_balance``.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        verbose_name=_("User"),
        help_text=_("Associated user account"),
    )

    seller_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        verbose_name=_("Seller Balance"),
        help_text=_("Sum of net payouts from course sales"),
    )

    class Meta:
        verbose_name = _("User Profile")
        verbose_name_plural = _("User Profiles")
        db_table = "elearning_profile"

    def __str__(self) -> str:
        return f"{self.user.username} Profile"

    def __repr__(self) -> str:
        return f"<Profile(user={self.user.username}, seller_balance={self.seller_balance})>"

    @classmethod
    def credit_seller_balance(cls, user_id: int, amount: Decimal) -> None:
        """
        Atomically add ``amount`` to a seller's balance.

        Uses an ``F()`` expression so concurrent credits never overwrite each
        other. A missing profile is created first.

        Args:
            user_id: Seller user id
            amount: Unit amount to add (Decimal, two places)
        """
        updated = cls.objects.filter(user_id=user_id).update(
            seller_balance=F("seller_balance") + amount
        )
        if updated:
            return

        logger.info("Creating missing profile for seller %s before crediting", user_id)
        cls.objects.get_or_create(user_id=user_id)
        cls.objects.filter(user_id=user_id).update(seller_balance=F("seller_balance") + amount)


# --- Signal Handlers for Automatic Profile Management ---


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(sender, instance, created: bool, **kwargs) -> None:
    """
    Automatically create a user profile when a new user is created.

    Args:
        sender: The User model class
        instance: The actual User instance that was saved
        created: Boolean indicating if this is a new instance
        **kwargs: Additional signal arguments
    """
    if created:
        Profile.objects.get_or_create(user=instance)
