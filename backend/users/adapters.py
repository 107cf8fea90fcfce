"""
Account adapter for django-allauth.

Confirmation links point at the JSON confirm endpoint
(``account_confirm_email``); the adapter only adds structured logging and the
optional frontend link override.
"""

import logging

from allauth.account.adapter import DefaultAccountAdapter
from django.conf import settings

logger = logging.getLogger(__name__)


class TrackerAccountAdapter(DefaultAccountAdapter):
    """Account adapter used by the sign-up flow."""

    def get_email_confirmation_url(self, request, emailconfirmation):
        """
        Link placed in the confirmation email.

        When ``ACCOUNT_EMAIL_CONFIRMATION_FRONTEND_URL`` is set (for example
        ``https://app.example.com/confirm/{key}``) the key is formatted into it,
        otherwise the API confirm endpoint is used.
        """
        frontend_url = getattr(settings, "ACCOUNT_EMAIL_CONFIRMATION_FRONTEND_URL", "")
        if frontend_url:
            return frontend_url.format(key=emailconfirmation.key)
        return super().get_email_confirmation_url(request, emailconfirmation)

    def send_confirmation_mail(self, request, emailconfirmation, signup):
        logger.info(
            "Sending email confirmation",
            extra={
                "user_id": emailconfirmation.email_address.user_id,
                "signup": signup,
                "action": "email_confirmation_sent",
                "component": "TrackerAccountAdapter",
            },
        )
        return super().send_confirmation_mail(request, emailconfirmation, signup)
