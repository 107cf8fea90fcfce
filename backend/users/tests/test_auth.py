"""
Test suite for sign-up, email confirmation, sign-in, tokens and sign-out.

This test module covers:
- Sign-up with password confirmation and password strength validation
- Email confirmation gating sign-in
- Email/password sign-in with structured error kinds
- JWT refresh and session (profile) retrieval
- Lockout through recorded django-axes failures
"""

from allauth.account.models import EmailAddress, EmailConfirmation
from axes.models import AccessAttempt
from django.contrib.auth import get_user_model
from django.core import mail
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

User = get_user_model()


class UserAuthTests(APITestCase):
    """
    Test suite for the email-based authentication flow.
    """

    def setUp(self):
        self.user = User.objects.create_user(
            email="test@example.com",
            password="strongpass123",
            first_name="Test",
            last_name="User",
        )
        EmailAddress.objects.create(
            user=self.user, email=self.user.email, verified=True, primary=True
        )

        self.signup_url = reverse("signup")
        self.login_url = reverse("rest_login")
        self.logout_url = reverse("logout")
        self.refresh_url = reverse("token_refresh")
        self.user_url = reverse("rest_user_details")

    def _signup_payload(self, **overrides):
        payload = {
            "first_name": "Wanjiku",
            "last_name": "Kamau",
            "email": "wanjiku@example.com",
            "password": "kilimanjaro42",
            "password_confirm": "kilimanjaro42",
        }
        payload.update(overrides)
        return payload

    # =========================================================================
    # SIGN-UP TESTS
    # =========================================================================

    def test_signup_then_confirm_then_login(self):
        """
        Full flow: the account is created, sign-in is refused until the emailed
        link is followed, then sign-in returns tokens.
        """
        mail.outbox = []

        response = self.client.post(self.signup_url, self._signup_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["email_verification_required"])
        self.assertEqual(response.data["user"]["first_name"], "Wanjiku")

        new_user = User.objects.get(email="wanjiku@example.com")
        email_address = EmailAddress.objects.get(user=new_user)
        self.assertFalse(email_address.verified)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("wanjiku@example.com", mail.outbox[0].to)

        login_data = {"email": "wanjiku@example.com", "password": "kilimanjaro42"}
        refused = self.client.post(self.login_url, login_data, format="json")
        self.assertEqual(refused.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(refused.data["error_kind"], "email_not_confirmed")

        confirmation = EmailConfirmation.objects.get(email_address=email_address)
        confirm_url = reverse("account_confirm_email", kwargs={"key": confirmation.key})
        self.assertIn(confirm_url, mail.outbox[0].body)

        confirmed = self.client.get(confirm_url)
        self.assertEqual(confirmed.status_code, status.HTTP_200_OK)
        email_address.refresh_from_db()
        self.assertTrue(email_address.verified)

        login_response = self.client.post(self.login_url, login_data, format="json")
        self.assertEqual(login_response.status_code, status.HTTP_200_OK)
        self.assertIn("access", login_response.data)
        self.assertIn("refresh", login_response.data)

    def test_signup_existing_email_is_already_registered(self):
        """Signing up with a registered email answers 409 already_registered."""
        response = self.client.post(
            self.signup_url,
            self._signup_payload(email="TEST@example.com"),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error_kind"], "already_registered")
        self.assertEqual(User.objects.filter(email="test@example.com").count(), 1)

    def test_signup_password_mismatch(self):
        response = self.client.post(
            self.signup_url,
            self._signup_payload(password_confirm="different42"),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error_kind"], "password_mismatch")
        self.assertFalse(User.objects.filter(email="wanjiku@example.com").exists())

    def test_signup_weak_password_scenarios(self):
        """Short, numeric and common passwords are all weak_password."""
        for password in ["ab1", "12345678", "password"]:
            with self.subTest(password=password):
                response = self.client.post(
                    self.signup_url,
                    self._signup_payload(password=password, password_confirm=password),
                    format="json",
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data["error_kind"], "weak_password")
                self.assertTrue(response.data["messages"])

        self.assertFalse(User.objects.filter(email="wanjiku@example.com").exists())

    def test_signup_missing_fields(self):
        response = self.client.post(
            self.signup_url, {"email": "someone@example.com"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", response.data)
        self.assertIn("first_name", response.data)

    def test_confirm_email_invalid_key(self):
        url = reverse("account_confirm_email", kwargs={"key": "notarealkey"})
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Invalid or expired", response.data["detail"])

    # =========================================================================
    # SIGN-IN TESTS
    # =========================================================================

    def test_login_success_returns_tokens_and_profile(self):
        data = {"email": "test@example.com", "password": "strongpass123"}
        response = self.client.post(self.login_url, data, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
        self.assertEqual(response.data["user"]["email"], "test@example.com")

    def test_login_email_is_case_insensitive(self):
        data = {"email": "Test@Example.com", "password": "strongpass123"}
        response = self.client.post(self.login_url, data, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_failure_scenarios(self):
        test_cases = [
            {
                "name": "wrong_password",
                "data": {"email": "test@example.com", "password": "wrongpass"},
                "expected_status": status.HTTP_401_UNAUTHORIZED,
                "error_kind": "invalid_credentials",
            },
            {
                "name": "nonexistent_user",
                "data": {"email": "nouser@example.com", "password": "nopass123"},
                "expected_status": status.HTTP_401_UNAUTHORIZED,
                "error_kind": "invalid_credentials",
            },
            {
                "name": "missing_password",
                "data": {"email": "test@example.com", "password": ""},
                "expected_status": status.HTTP_400_BAD_REQUEST,
                "error_kind": None,
            },
        ]

        for case in test_cases:
            with self.subTest(case["name"]):
                response = self.client.post(self.login_url, case["data"], format="json")
                self.assertEqual(response.status_code, case["expected_status"])
                if case["error_kind"]:
                    self.assertEqual(response.data["error_kind"], case["error_kind"])

    def test_login_refused_while_locked_out(self):
        """Recorded axes failures at the limit lock the email."""
        AccessAttempt.objects.create(
            username="test@example.com",
            ip_address="127.0.0.1",
            user_agent="test-agent",
            failures_since_start=5,
        )
        data = {"email": "test@example.com", "password": "strongpass123"}
        response = self.client.post(self.login_url, data, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error_kind"], "account_locked")

    # =========================================================================
    # TOKEN AND SESSION TESTS
    # =========================================================================

    def test_refresh_token_success(self):
        refresh = RefreshToken.for_user(self.user)
        response = self.client.post(self.refresh_url, {"refresh": str(refresh)}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)

    def test_refresh_token_blacklisted(self):
        refresh = RefreshToken.for_user(self.user)
        refresh.blacklist()
        response = self.client.post(self.refresh_url, {"refresh": str(refresh)}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_session_retrieval_requires_token(self):
        self.assertEqual(
            self.client.get(self.user_url).status_code, status.HTTP_401_UNAUTHORIZED
        )

        access = str(RefreshToken.for_user(self.user).access_token)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        response = self.client.get(self.user_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["full_name"], "Test User")

    def test_profile_update_keeps_email(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.patch(
            self.user_url,
            {"first_name": "Changed", "email": "other@example.com"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, "Changed")
        self.assertEqual(self.user.email, "test@example.com")

    # =========================================================================
    # SIGN-OUT TESTS
    # =========================================================================

    def test_logout_blacklists_refresh_token(self):
        login_data = {"email": "test@example.com", "password": "strongpass123"}
        refresh_token = self.client.post(self.login_url, login_data, format="json").data[
            "refresh"
        ]

        response = self.client.post(self.logout_url, {"refresh": refresh_token}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        refresh_response = self.client.post(
            self.refresh_url, {"refresh": refresh_token}, format="json"
        )
        self.assertEqual(refresh_response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_edge_cases(self):
        """Sign-out never fails, whatever token it receives."""
        blacklisted = RefreshToken.for_user(self.user)
        blacklisted.blacklist()

        test_cases = [
            {"name": "invalid_token_format", "data": {"refresh": "not_a_token"}},
            {
                "name": "malformed_but_valid_looking_token",
                "data": {"refresh": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.fake.fake"},
            },
            {"name": "empty_payload", "data": {}},
            {"name": "already_blacklisted_token", "data": {"refresh": str(blacklisted)}},
        ]

        for case in test_cases:
            with self.subTest(case["name"]):
                response = self.client.post(self.logout_url, case["data"], format="json")
                self.assertEqual(response.status_code, status.HTTP_200_OK)
                self.assertIn("Successfully logged out", response.data["detail"])
