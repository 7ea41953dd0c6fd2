"""
Course Payment Notifications

Fire-and-forget emails to buyers and sellers. A failed notification is
logged and never affects the settlement that triggered it.
"""

import logging
from functools import partial
from typing import Any, Dict

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction

logger = logging.getLogger(__name__)

COURSE_PURCHASE_SUCCEEDED = "course_purchase_succeeded"
COURSE_SALE = "course_sale"
COURSE_PAYMENT_REJECTED = "course_payment_rejected"

TEMPLATES = {
    COURSE_PURCHASE_SUCCEEDED: (
        "Your purchase of {course_title} is confirmed",
        "Hello {name},\n\nyour payment for \"{course_title}\" was received. "
        "You now have access to the course.\n\n{frontend_url}/courses/{course_id}\n",
    ),
    COURSE_SALE: (
        "New sale: {course_title}",
        "Hello {name},\n\n\"{course_title}\" was just purchased. "
        "{net} {currency} have been credited to your seller balance.\n",
    ),
    COURSE_PAYMENT_REJECTED: (
        "Payment for {course_title} was not accepted",
        "Hello {name},\n\nyour manual payment for \"{course_title}\" could not be "
        "confirmed (status: {status}).\n{note}\n",
    ),
}


class _Defaults(dict):
    def __missing__(self, key):
        return ""


def notify(user_id: int, kind: str, payload: Dict[str, Any]) -> bool:
    """
    Send a notification email. Never raises.

    Returns:
        True if the email was handed to the mail backend
    """
    try:
        subject_tpl, body_tpl = TEMPLATES[kind]
        user = get_user_model().objects.get(pk=user_id)
        if not user.email:
            logger.info("User %s has no email, skipping %s notification", user_id, kind)
            return False

        context = _Defaults(payload)
        context.setdefault("name", user.get_full_name() or user.get_username())
        context.setdefault("frontend_url", getattr(settings, "FRONTEND_URL", ""))

        send_mail(
            subject=subject_tpl.format_map(context),
            message=body_tpl.format_map(context),
            from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
            recipient_list=[user.email],
            fail_silently=False,
        )
        return True
    except Exception:
        logger.exception("Failed to send %s notification to user %s", kind, user_id)
        return False


def notify_on_commit(user_id: int, kind: str, payload: Dict[str, Any]) -> None:
    """Schedule ``notify`` to run after the current transaction commits."""
    transaction.on_commit(partial(notify, user_id, kind, dict(payload)))
