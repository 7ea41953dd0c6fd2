"""
E-Learning Application URL Configuration

URL Structure:
- /api/elearning/token/: Authentication endpoints (JWT token management)
- /api/elearning/payments/courses/: Course checkout, orders, payouts

Author: DSP Development Team
Version: 1.1.0
"""

from typing import List

from django.urls import URLPattern, include, path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

app_name = "elearning"

urlpatterns: List[URLPattern] = [
    # Authentication endpoints (JWT token management)
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("token/verify/", TokenVerifyView.as_view(), name="token_verify"),
    # Course marketplace
    path("payments/courses/", include("elearning.payments.urls")),
]
