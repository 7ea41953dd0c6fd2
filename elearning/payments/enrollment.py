"""
Enrollment Granter

Grants course access after a successful settlement. Upsert only.
"""

import logging
from typing import Tuple

from elearning.courses.models import CourseEnrollment

logger = logging.getLogger(__name__)


def grant_enrollment(
    buyer_id: int, course_id: int, *, source: str, reference: str = ""
) -> Tuple[CourseEnrollment, bool]:
    """
    Ensure ``buyer_id`` is enrolled in ``course_id``.

    ``get_or_create`` re-reads the row if a concurrent insert hits the
    unique (user, course) constraint, so this never raises for duplicates.
    """
    enrollment, created = CourseEnrollment.objects.get_or_create(
        user_id=buyer_id,
        course_id=course_id,
        defaults={"source": source, "reference": reference or ""},
    )
    if created:
        logger.info("Enrolled user %s in course %s (%s)", buyer_id, course_id, source)
    return enrollment, created
