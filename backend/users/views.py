"""
Views for sign-up, email confirmation and sign-out.

Sign-in and session retrieval are served by dj-rest-auth (see ``urls.py``)
with the serializers from this app.
"""

import logging

from allauth.account.models import EmailConfirmation
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .serializers import ProfileSerializer, SignupSerializer

logger = logging.getLogger(__name__)


class SignupView(generics.CreateAPIView):
    """
    Create an account and send the email confirmation.

    The account cannot sign in until the confirmation link is followed.
    """

    serializer_class = SignupSerializer
    permission_classes = [permissions.AllowAny]
    throttle_scope = "dj_rest_auth"

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        return Response(
            {
                "detail": "Account created. Check your email to confirm your address.",
                "email_verification_required": True,
                "user": ProfileSerializer(user).data,
            },
            status=status.HTTP_201_CREATED,
        )


class ConfirmEmailView(APIView):
    """
    Confirm an email address from the link sent at sign-up.

    Responds with JSON instead of rendering allauth templates.
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get_object(self, key):
        return (
            EmailConfirmation.objects.all_valid()
            .select_related("email_address__user")
            .filter(key=key.lower())
            .first()
        )

    def get(self, request, key):
        confirmation = self.get_object(key)

        if confirmation is None:
            logger.warning(
                "Email confirmation key not found or expired",
                extra={
                    "action": "email_confirmation_invalid",
                    "component": "ConfirmEmailView",
                },
            )
            return Response(
                {"detail": "Invalid or expired confirmation link."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        email_address = confirmation.email_address
        if not email_address.verified:
            confirmation.confirm(request)
            email_address.refresh_from_db()

        logger.info(
            "Email confirmation completed",
            extra={
                "user_id": email_address.user_id,
                "verified": email_address.verified,
                "action": "email_confirmation_complete",
                "component": "ConfirmEmailView",
            },
        )
        return Response(
            {
                "detail": "Email was successfully confirmed. You can now sign in.",
                "email": email_address.email,
                "verified": email_address.verified,
            },
            status=status.HTTP_200_OK,
        )


class LogoutView(APIView):
    """
    Sign-out that blacklists the refresh token.

    Always answers 200: an unusable token means the session is already over.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        refresh_token = request.data.get("refresh", "")

        if refresh_token and isinstance(refresh_token, str):
            try:
                RefreshToken(refresh_token).blacklist()
                logger.info(
                    "Refresh token blacklisted",
                    extra={"action": "logout", "component": "LogoutView"},
                )
            except TokenError as exc:
                logger.warning(
                    "Token blacklisting skipped",
                    extra={
                        "error_message": str(exc),
                        "action": "logout_token_rejected",
                        "component": "LogoutView",
                    },
                )

        return Response(
            {"detail": "Successfully logged out."}, status=status.HTTP_200_OK
        )
