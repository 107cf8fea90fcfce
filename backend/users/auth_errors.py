"""
Structured classification of authentication failures.

Every failure raised by the sign-up and sign-in flows carries an error code.
Codes come from Django's password validators, model uniqueness checks, the
serializers in this app, and the documented error codes of hosted auth
providers (``user_already_exists``, ``email_not_confirmed``, ...). They are
resolved here to an ``AuthErrorKind`` with a user-facing message and an HTTP
status. Human-readable error text is never inspected.
"""

import logging
from enum import Enum

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException

logger = logging.getLogger(__name__)


class AuthErrorKind(str, Enum):
    ALREADY_REGISTERED = "already_registered"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    WEAK_PASSWORD = "weak_password"
    PASSWORD_MISMATCH = "password_mismatch"
    ACCOUNT_LOCKED = "account_locked"
    UNKNOWN = "unknown"


ERROR_CODE_KINDS = {
    # Registration
    "user_already_exists": AuthErrorKind.ALREADY_REGISTERED,
    "email_exists": AuthErrorKind.ALREADY_REGISTERED,
    "email_address_exists": AuthErrorKind.ALREADY_REGISTERED,
    "unique": AuthErrorKind.ALREADY_REGISTERED,
    # Credentials
    "invalid_credentials": AuthErrorKind.INVALID_CREDENTIALS,
    "invalid_grant": AuthErrorKind.INVALID_CREDENTIALS,
    "authentication_failed": AuthErrorKind.INVALID_CREDENTIALS,
    "user_not_found": AuthErrorKind.INVALID_CREDENTIALS,
    # Verification
    "email_not_confirmed": AuthErrorKind.EMAIL_NOT_CONFIRMED,
    "email_not_verified": AuthErrorKind.EMAIL_NOT_CONFIRMED,
    # Password strength (Django validators + hosted auth)
    "weak_password": AuthErrorKind.WEAK_PASSWORD,
    "password_too_short": AuthErrorKind.WEAK_PASSWORD,
    "password_too_common": AuthErrorKind.WEAK_PASSWORD,
    "password_entirely_numeric": AuthErrorKind.WEAK_PASSWORD,
    "password_too_similar": AuthErrorKind.WEAK_PASSWORD,
    "password_mismatch": AuthErrorKind.PASSWORD_MISMATCH,
    # Lockout
    "account_locked": AuthErrorKind.ACCOUNT_LOCKED,
    "over_request_rate_limit": AuthErrorKind.ACCOUNT_LOCKED,
}

FRIENDLY_MESSAGES = {
    AuthErrorKind.ALREADY_REGISTERED: (
        "An account with this email already exists. Please sign in instead."
    ),
    AuthErrorKind.INVALID_CREDENTIALS: (
        "Invalid email or password. Please try again."
    ),
    AuthErrorKind.EMAIL_NOT_CONFIRMED: (
        "Please verify your email address before signing in. "
        "Check your inbox for the confirmation link."
    ),
    AuthErrorKind.WEAK_PASSWORD: (
        "Password is too weak. Use at least 6 characters and avoid common "
        "or purely numeric passwords."
    ),
    AuthErrorKind.PASSWORD_MISMATCH: "Passwords do not match.",
    AuthErrorKind.ACCOUNT_LOCKED: (
        "Too many sign-in attempts. Account temporarily locked for 15 minutes."
    ),
    AuthErrorKind.UNKNOWN: "Authentication failed. Please try again later.",
}

STATUS_CODES = {
    AuthErrorKind.ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    AuthErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.EMAIL_NOT_CONFIRMED: status.HTTP_403_FORBIDDEN,
    AuthErrorKind.WEAK_PASSWORD: status.HTTP_400_BAD_REQUEST,
    AuthErrorKind.PASSWORD_MISMATCH: status.HTTP_400_BAD_REQUEST,
    AuthErrorKind.ACCOUNT_LOCKED: status.HTTP_403_FORBIDDEN,
    AuthErrorKind.UNKNOWN: status.HTTP_400_BAD_REQUEST,
}


def classify_code(code):
    """Resolve a single error code to its AuthErrorKind."""
    if isinstance(code, AuthErrorKind):
        return code
    return ERROR_CODE_KINDS.get(str(code or "").strip().lower(), AuthErrorKind.UNKNOWN)


def classify_validation_error(error):
    """
    Resolve a Django ValidationError raised by password validation or model
    checks. The first error with a known code wins.
    """
    codes = [item.code for item in getattr(error, "error_list", [error])]
    for code in codes:
        kind = classify_code(code)
        if kind is not AuthErrorKind.UNKNOWN:
            return kind
    return AuthErrorKind.UNKNOWN


class AuthError(APIException):
    """
    API exception rendered as ``{"detail": <message>, "error_kind": <kind>}``.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = AuthErrorKind.UNKNOWN.value

    def __init__(self, kind, messages=None):
        self.kind = classify_code(kind)
        self.status_code = STATUS_CODES[self.kind]
        detail = {
            "detail": FRIENDLY_MESSAGES[self.kind],
            "error_kind": self.kind.value,
        }
        if messages:
            detail["messages"] = list(messages)

        logger.info(
            "Authentication error classified",
            extra={
                "error_kind": self.kind.value,
                "status_code": self.status_code,
                "action": "auth_error_classified",
                "component": "AuthError",
            },
        )
        super().__init__(detail=detail, code=self.kind.value)

    @classmethod
    def from_validation_error(cls, error):
        if isinstance(error, DjangoValidationError):
            return cls(classify_validation_error(error), messages=error.messages)
        return cls(AuthErrorKind.UNKNOWN)
