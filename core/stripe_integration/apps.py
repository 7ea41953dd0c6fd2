"""
Stripe Integration AppConfig
============================

Registers `core.stripe_integration` with Django and imports the signal
handlers at startup so that the `post_save` receiver for
`djstripe.models.Event` is connected exactly once per process.

Operational notes
-----------------
- `apps.py` is executed on every process start; avoid DB/network calls here.
- To pause webhook processing (e.g. during a data migration) comment out
  the signals import below; events stay stored in dj-stripe and
  `reconcile_course_orders` catches up afterwards.

Author: DSP Development Team
Date: 2025-09-03
"""

from django.apps import AppConfig


class StripeIntegrationConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.stripe_integration"
    label = "stripe_integration"
    verbose_name = "Stripe Integration"

    def ready(self):
        from . import signals  # noqa: F401
