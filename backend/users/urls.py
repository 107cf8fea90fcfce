"""
URL configuration for authentication endpoints.

No ``app_name`` namespace: django-allauth reverses ``account_confirm_email``
when it builds the confirmation link.
"""

from dj_rest_auth.views import LoginView, UserDetailsView
from django.urls import path, re_path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import ConfirmEmailView, LogoutView, SignupView

urlpatterns = [
    path("auth/signup/", SignupView.as_view(), name="signup"),
    re_path(
        r"^auth/confirm-email/(?P<key>[-:\w]+)/$",
        ConfirmEmailView.as_view(),
        name="account_confirm_email",
    ),
    path("auth/login/", LoginView.as_view(), name="rest_login"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("auth/user/", UserDetailsView.as_view(), name="rest_user_details"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
]
