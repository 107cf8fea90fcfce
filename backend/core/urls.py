"""
Root URL configuration.

All JSON endpoints live under ``/api/``: authentication in ``users.urls`` and
the finance resources in ``tracker.urls``.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("users.urls")),
    path("api/", include("tracker.urls")),
]
