# tracker/tests/conftest.py
from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from tracker.models import Budget, Transaction

User = get_user_model()

# =============================================================================
# USER FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def clear_alert_cache():
    """Budget alert state lives in the cache; start every test clean."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def test_user(db):
    return User.objects.create_user(email="test@example.com", password="testpass123")


@pytest.fixture
def test_user2(db):
    return User.objects.create_user(email="test2@example.com", password="testpass123")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(test_user):
    client = APIClient()
    client.force_authenticate(user=test_user)
    return client


# =============================================================================
# TRANSACTION AND BUDGET FIXTURES
# =============================================================================


@pytest.fixture
def food_expense(db, test_user):
    return Transaction.objects.create(
        user=test_user,
        title="Groceries",
        amount=Decimal("300.00"),
        date=date(2024, 3, 10),
        category="Food",
        type="expense",
    )


@pytest.fixture
def salary_income(db, test_user):
    return Transaction.objects.create(
        user=test_user,
        title="Salary",
        amount=Decimal("5000.00"),
        date=date(2024, 3, 1),
        category="Salary",
        type="income",
    )


@pytest.fixture
def food_budget(db, test_user):
    return Budget.objects.create(
        user=test_user, category="Food", amount=Decimal("1000.00"), period="monthly"
    )


# =============================================================================
# STATEMENT FIXTURES
# =============================================================================

STATEMENT_HEADER = "Receipt No,Completion Time,Details,Transaction Status,Paid In,Withdrawn,Balance"


@pytest.fixture
def statement_text():
    """Five data rows: three usable, one pending, one without amounts."""
    return "\n".join(
        [
            STATEMENT_HEADER,
            '"QA1","2024-03-05 09:00:00","Payment to FRESH MART Till 555","Completed","","450.00","9550.00"',
            '"QA2","2024-03-05 10:00:00","Airtime Purchase","Completed","","50.00","9500.00"',
            '"QA3","2024-03-04 12:00:00","Received from JANE","Completed","1,200.00","","10700.00"',
            '"QA4","2024-03-04 13:00:00","Sent to BOB","Pending","","100.00","10600.00"',
            '"QA5","2024-03-04 14:00:00","Balance check","Completed","","","10600.00"',
        ]
    )
