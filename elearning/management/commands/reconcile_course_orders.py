"""
Reconcile Course Orders Management Command - DSP (Digital Solutions Platform)

Gleicht offene Stripe-Kursbestellungen mit Stripe ab, falls ein Webhook
verloren gegangen ist oder der Käufer die Erfolgsseite nie erreicht hat.

Features:
- Re-Hydration aller offenen Gateway-Bestellungen mit Session-Referenz
- Mindestalter, damit laufende Checkouts nicht gestört werden
- Dry-Run-Modus für Monitoring
- Idempotent: Payouts und Enrollments werden höchstens einmal erzeugt

Beispiel:
    python manage.py reconcile_course_orders --min-age-minutes 30 --limit 200

Author: DSP Development Team
Created: 02.10.2025
Version: 1.0.0
"""

import logging
from collections import Counter
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.stripe_integration.gateway import StripeSettlementGateway
from elearning.payments.intake import refresh_course_order
from elearning.payments.models import CourseOrder

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """
    Django Management Command zum Abgleich offener Kursbestellungen.

    Jede offene Bestellung wird über den Stripe Gateway neu geladen und wie
    ein Webhook verarbeitet. Fehler bei einzelnen Bestellungen brechen den
    Lauf nicht ab.
    """

    help = "Gleicht offene Stripe-Kursbestellungen mit Stripe ab (settled / canceled / unverändert)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--min-age-minutes",
            type=int,
            default=15,
            help="Nur Bestellungen abgleichen, die älter als N Minuten sind (Standard: 15).",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=100,
            help="Maximale Anzahl Bestellungen pro Lauf (Standard: 100).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Nur anzeigen, welche Bestellungen abgeglichen würden.",
        )

    def handle(self, *args, **options):
        min_age = options["min_age_minutes"]
        limit = options["limit"]
        if min_age < 0 or limit < 1:
            raise CommandError("--min-age-minutes must be >= 0 and --limit >= 1")

        cutoff = timezone.now() - timedelta(minutes=min_age)
        orders = list(
            CourseOrder.objects.open_gateway()
            .filter(created_at__lte=cutoff)
            .order_by("created_at")[:limit]
        )

        self.stdout.write(f"{len(orders)} offene Bestellung(en) älter als {min_age} Minuten gefunden.")
        if options["dry_run"]:
            for order in orders:
                self.stdout.write(f"  - #{order.pk} {order.course_title} ({order.checkout_session_id})")
            return

        gateway = StripeSettlementGateway()
        counts = Counter()
        for order in orders:
            try:
                refresh_course_order(order, gateway=gateway)
            except Exception:
                logger.exception("Reconciliation of course order %s failed", order.pk)
                counts["errors"] += 1
                continue

            if order.status == CourseOrder.STATUS_SUCCEEDED:
                counts["settled"] += 1
            elif order.status in (CourseOrder.STATUS_CANCELED, CourseOrder.STATUS_FAILED):
                counts["canceled"] += 1
            else:
                counts["unchanged"] += 1

        summary = (
            f"settled={counts['settled']} canceled={counts['canceled']} "
            f"unchanged={counts['unchanged']} errors={counts['errors']}"
        )
        logger.info("Course order reconciliation finished: %s", summary)
        self.stdout.write(self.style.SUCCESS(summary))
