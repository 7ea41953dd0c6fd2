"""
Stripe Integration Package - DSP
=============================================================

This package centralizes all Stripe-related logic for the DSP backend.

Current Scope
--------------------
- `gateway.py` is the only place that talks to the Stripe API. It creates
  hosted Checkout Sessions and retrieves sessions / PaymentIntents with the
  charge and balance transaction expanded, normalized into dataclasses.
- `dj-stripe` verifies, de-duplicates and persists webhook Events; our
  `post_save` receiver (see signals.py) forwards them to the course
  settlement intake (`elearning.payments.intake`).
- Returns publishable config keys to the frontend (views.py).

Structure
---------
- __init__.py (this file, documentation)
- apps.py         → App configuration (`StripeIntegrationConfig`)
- gateway.py      → Stripe settlement gateway adapter
- views.py        → Stripe config endpoint
- signals.py      → Webhook handlers (Event post-processing)
- urls.py         → Routes for Stripe endpoints

Author: DSP Development Team
Date: 2025-09-03
"""
