from django.urls import path

from .views import GetStripeConfigView

app_name = "stripe_integration"

urlpatterns = [
    path("stripe/config/", GetStripeConfigView.as_view(), name="stripe-config"),
]
