# flake8: noqa
"""
Test settings: in-memory SQLite, local memory email and cache, fast hashing.
"""

from .base import *

ENVIRONMENT = "test"

DEBUG = False
SECRET_KEY = "django-insecure-test-key"
ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "tracker-test",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
DEFAULT_FROM_EMAIL = "test@mpesa-tracker.local"

# Lockout is exercised explicitly in the auth tests
AXES_ENABLED = False

REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {"dj_rest_auth": "1000/minute"}

LOGGING["handlers"]["console"]["level"] = "WARNING"
