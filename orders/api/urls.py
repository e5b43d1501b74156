from django.urls import path
from .views import (
    OrderAssignAPIView,
    OrderDetailAPIView,
    OrderListCreateAPIView,
    OrderPartnerStatusAPIView,
    OrderRatingAPIView,
    OrderStatsAPIView,
)

urlpatterns = [
    path("orders/", OrderListCreateAPIView.as_view(), name="order-list"),
    path("orders/stats/", OrderStatsAPIView.as_view(), name="order-stats"),
    path("orders/<int:pk>/", OrderDetailAPIView.as_view(), name="order-detail"),
    path("orders/<int:pk>/assign/", OrderAssignAPIView.as_view(), name="order-assign"),
    path("orders/<int:pk>/status/", OrderPartnerStatusAPIView.as_view(), name="order-status"),
    path("orders/<int:pk>/rating/", OrderRatingAPIView.as_view(), name="order-rating"),
]
