"""
URL configuration for the results engine.

The academics app exposes the JSON endpoints for submitting, ranking,
publishing and reading term results; the admin covers reference data.
"""

from django.contrib import admin
from django.urls import path, include
from django.contrib.auth import views as auth_views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("academics/", include("academics.urls")),

    # Auth
    path("login/", auth_views.LoginView.as_view(), name="login"),
    path("logout/", auth_views.LogoutView.as_view(), name="logout"),
]
