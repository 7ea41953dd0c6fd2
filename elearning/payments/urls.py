from typing import List

from django.urls import URLPattern, path

from elearning.payments import views

app_name = "payments"

urlpatterns: List[URLPattern] = [
    path("<int:course_id>/checkout/", views.CourseCheckoutView.as_view(), name="course-checkout"),
    path("<int:course_id>/enroll/", views.CourseFreeEnrollView.as_view(), name="course-enroll"),
    path("refresh/", views.CourseOrderRefreshView.as_view(), name="course-order-refresh"),
    path("mine/", views.MyCourseOrdersView.as_view(), name="course-orders-mine"),
    path("orders/<int:order_id>/", views.CourseOrderDetailView.as_view(), name="course-order-detail"),
    path("payouts/mine/", views.MyCoursePayoutsView.as_view(), name="course-payouts-mine"),
    path(
        "payouts/mine/summary/",
        views.MyCoursePayoutSummaryView.as_view(),
        name="course-payouts-summary",
    ),
    path("manual/pending/", views.PendingManualOrdersView.as_view(), name="manual-pending"),
    path(
        "manual/<int:order_id>/confirm/",
        views.ConfirmManualOrderView.as_view(),
        name="manual-confirm",
    ),
]
