"""
E-Learning Application Models Registry

This module serves as the central models registry for the E-Learning application.
It imports and exposes all models from the logical submodules (users, courses,
payments) so they are registered with Django's ORM under the ``elearning`` app.

Architecture:
- users/: Profile and seller balance
- courses/: Course catalog and enrollments
- payments/: Course orders, payouts and platform commissions

Author: DSP Development Team
Version: 1.1.0
"""

from .users.models import Profile
from .courses.models import Community, Course, CourseEnrollment
from .payments.models import CourseCommission, CourseOrder, CoursePayout

__all__ = [
    "Profile",
    "Community",
    "Course",
    "CourseEnrollment",
    "CourseOrder",
    "CoursePayout",
    "CourseCommission",
]
