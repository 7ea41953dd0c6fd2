"""
URL configuration for the DSP backend.

- /admin/                  → Django admin (Jazzmin)
- /api/elearning/          → E-Learning API (JWT, course payments)
- /api/payments/           → Stripe config endpoint
- /stripe/                 → dj-stripe webhook endpoint
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/elearning/", include("elearning.urls")),
    path("api/payments/", include("core.stripe_integration.urls")),
    path("stripe/", include("djstripe.urls", namespace="djstripe")),
]
