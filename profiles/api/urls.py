from django.urls import path
from .views import (
    AvailablePartnersView,
    MyActiveOrdersView,
    MyOrdersView,
    MyStatsView,
    PartnerActivationView,
    PartnerAvailabilityView,
    PartnerDetailView,
    PartnerListView,
    ProfileView,
)

urlpatterns = [
    path("profile/<int:pk>/", ProfileView.as_view(), name="profile"),
    path("partners/", PartnerListView.as_view(), name="partner-list"),
    path("partners/available/", AvailablePartnersView.as_view(), name="partner-available"),
    path("partners/availability/", PartnerAvailabilityView.as_view(), name="partner-availability"),
    path("partners/my/orders/", MyOrdersView.as_view(), name="partner-my-orders"),
    path("partners/my/active-orders/", MyActiveOrdersView.as_view(), name="partner-my-active-orders"),
    path("partners/my/stats/", MyStatsView.as_view(), name="partner-my-stats"),
    path("partners/<int:pk>/", PartnerDetailView.as_view(), name="partner-detail"),
    path("partners/<int:pk>/status/", PartnerActivationView.as_view(), name="partner-status"),
]
