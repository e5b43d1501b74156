"""Root URL configuration. All API routes live under /api/."""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("user_auth_app.api.urls")),
    path("api/", include("common.api.urls")),
    path("api/", include("orders.api.urls")),
    path("api/", include("profiles.api.urls")),
]
