"""
Callables for django-axes.

Failed sign-ins are tracked per email address, and the lockout response uses
the same body shape as every other authentication error.
"""

from django.http import JsonResponse

from .auth_errors import FRIENDLY_MESSAGES, STATUS_CODES, AuthErrorKind


def get_axes_username(request, credentials):
    """
    Identifier used by AXES_USERNAME_CALLABLE to count failed attempts.

    Returns the lower-cased email from the credentials, or None.
    """
    if not credentials:
        return None

    identifier = credentials.get("email") or credentials.get("username")
    return identifier.strip().lower() if identifier else None


def custom_lockout_response(request, credentials, *args, **kwargs):
    """Response returned by django-axes once an email is locked out."""
    kind = AuthErrorKind.ACCOUNT_LOCKED
    return JsonResponse(
        {"detail": FRIENDLY_MESSAGES[kind], "error_kind": kind.value},
        status=STATUS_CODES[kind],
    )
