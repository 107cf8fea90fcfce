"""
Serializers for sign-up, sign-in and profile management.

Sign-in extends dj-rest-auth's LoginSerializer with email-only
authentication, the django-axes lockout check and the mandatory email
verification gate. Every failure is raised as an ``AuthError`` carrying a
structured ``error_kind``.
"""

import logging

from allauth.account.models import EmailAddress
from axes.models import AccessAttempt
from dj_rest_auth.serializers import LoginSerializer
from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from rest_framework import serializers

from .auth_errors import AuthError, AuthErrorKind

logger = logging.getLogger(__name__)
User = get_user_model()


class EmailLoginSerializer(LoginSerializer):
    """
    Email and password sign-in.

    Validation order:
    1. Required fields
    2. django-axes lockout for the email
    3. Credential check through the configured authentication backends
    4. Email verification status (django-allauth ``EmailAddress``)
    """

    username = None
    email = serializers.EmailField(help_text="Email address used at sign-up")
    password = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Account password",
    )

    def _check_account_lockout(self, email: str) -> None:
        """
        Refuse sign-in while django-axes holds enough failures for this email.

        Raises:
            AuthError: ``account_locked`` with a 403 status
        """
        lockout_limit = getattr(settings, "AXES_FAILURE_LIMIT", 5)
        locked = AccessAttempt.objects.filter(
            username=email, failures_since_start__gte=lockout_limit
        ).exists()

        if locked:
            logger.warning(
                "Account lockout triggered - denying authentication",
                extra={
                    "email": email,
                    "lockout_limit": lockout_limit,
                    "action": "account_lockout_enforced",
                    "component": "EmailLoginSerializer",
                    "severity": "high",
                },
            )
            raise AuthError(AuthErrorKind.ACCOUNT_LOCKED)

    def _check_email_verified(self, user) -> None:
        if getattr(settings, "ACCOUNT_EMAIL_VERIFICATION", "none") != "mandatory":
            return

        verified = EmailAddress.objects.filter(
            user=user, email__iexact=user.email, verified=True
        ).exists()
        if not verified:
            logger.warning(
                "Authentication refused - email not confirmed",
                extra={
                    "user_id": user.id,
                    "action": "authentication_failure",
                    "component": "EmailLoginSerializer",
                    "reason": "email_not_confirmed",
                },
            )
            raise AuthError(AuthErrorKind.EMAIL_NOT_CONFIRMED)

    def validate(self, attrs: dict) -> dict:
        email = attrs.get("email", "").strip().lower()
        password = attrs.get("password")
        request = self.context.get("request")

        if not email or not password:
            logger.warning(
                "Login validation failed - missing credentials",
                extra={
                    "has_email": bool(email),
                    "has_password": bool(password),
                    "action": "validation_failure",
                    "component": "EmailLoginSerializer",
                    "reason": "missing_credentials",
                },
            )
            raise serializers.ValidationError(
                {"non_field_errors": "Email and password are required."}
            )

        self._check_account_lockout(email)

        logger.info(
            "Email authentication attempt",
            extra={
                "email": email,
                "action": "authentication_attempt",
                "component": "EmailLoginSerializer",
            },
        )
        user = authenticate(request=request, email=email, password=password)

        if not user:
            logger.warning(
                "Authentication failed - invalid credentials",
                extra={
                    "email": email,
                    "action": "authentication_failure",
                    "component": "EmailLoginSerializer",
                    "reason": "invalid_credentials",
                    "severity": "medium",
                },
            )
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        self._check_email_verified(user)

        logger.info(
            "Authentication successful",
            extra={
                "user_id": user.id,
                "action": "authentication_success",
                "component": "EmailLoginSerializer",
            },
        )
        attrs["user"] = user
        return attrs


class SignupSerializer(serializers.Serializer):
    """
    Account creation with profile fields.

    The password is checked against the confirmation and Django's password
    validators before anything is written. A confirmation email is sent for
    the new address; sign-in stays refused until it is confirmed.
    """

    first_name = serializers.CharField(max_length=150)
    last_name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})
    password_confirm = serializers.CharField(
        write_only=True, style={"input_type": "password"}
    )

    def validate_email(self, value):
        return value.strip().lower()

    def validate(self, attrs):
        if attrs["password"] != attrs["password_confirm"]:
            raise AuthError(AuthErrorKind.PASSWORD_MISMATCH)

        candidate = User(
            email=attrs["email"],
            first_name=attrs["first_name"],
            last_name=attrs["last_name"],
        )
        try:
            validate_password(attrs["password"], user=candidate)
        except DjangoValidationError as exc:
            logger.info(
                "Sign-up rejected by password validators",
                extra={
                    "codes": [error.code for error in exc.error_list],
                    "action": "signup_password_rejected",
                    "component": "SignupSerializer",
                },
            )
            raise AuthError.from_validation_error(exc)

        if User.objects.filter(email__iexact=attrs["email"]).exists():
            raise AuthError(AuthErrorKind.ALREADY_REGISTERED)

        return attrs

    def create(self, validated_data):
        request = self.context.get("request")
        email = validated_data["email"]

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    email=email,
                    password=validated_data["password"],
                    first_name=validated_data["first_name"].strip(),
                    last_name=validated_data["last_name"].strip(),
                )
                EmailAddress.objects.add_email(
                    request, user, email, confirm=True, signup=True
                )
        except IntegrityError:
            logger.warning(
                "Sign-up lost a race on a duplicate email",
                extra={
                    "email": email,
                    "action": "signup_duplicate",
                    "component": "SignupSerializer",
                },
            )
            raise AuthError(AuthErrorKind.ALREADY_REGISTERED)

        logger.info(
            "User account created",
            extra={
                "user_id": user.id,
                "action": "signup_success",
                "component": "SignupSerializer",
            },
        )
        return user


class ProfileSerializer(serializers.ModelSerializer):
    """Profile (first name, last name, email) of the signed-in user."""

    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ("id", "email", "first_name", "last_name", "full_name", "date_joined")
        read_only_fields = ("id", "email", "date_joined")
