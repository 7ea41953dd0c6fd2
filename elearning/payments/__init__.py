"""
Course Payments Package - DSP (Digital Solutions Platform)

Settlement engine for paid course access:

- money.py          → integer cents arithmetic
- models.py         → CourseOrder (state machine), CoursePayout, CourseCommission
- checkout.py       → Checkout Orchestrator (gateway / manual / free)
- hydration.py      → maps gateway state into the order snapshot
- ledger.py         → idempotent payout + commission + seller balance credit
- enrollment.py     → idempotent enrollment grant
- intake.py         → refresh, webhook and operator confirmation entry points
- notifications.py  → fire-and-forget buyer/seller emails
- views.py / urls.py / serializers.py → REST API

Author: DSP Development Team
Date: 2025-10-02
"""
