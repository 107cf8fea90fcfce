"""
Django AppConfig for the users application.
"""

from django.apps import AppConfig


class UsersConfig(AppConfig):
    """Accounts, profiles and authentication."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "users"
