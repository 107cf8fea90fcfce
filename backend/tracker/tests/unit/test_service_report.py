# tracker/tests/unit/test_service_report.py
from datetime import date
from decimal import Decimal

import pytest

from tracker.models import Transaction
from tracker.services.report_service import ReportService

from ..factories import TransactionFactory


@pytest.mark.django_db
class TestReportService:
    def test_totals(self, test_user, food_expense, salary_income):
        totals = ReportService.totals(Transaction.objects.filter(user=test_user))

        assert totals == {
            "income": Decimal("5000.00"),
            "expenses": Decimal("300.00"),
            "balance": Decimal("4700.00"),
        }

    def test_totals_empty(self, test_user):
        totals = ReportService.totals(Transaction.objects.filter(user=test_user))

        assert totals["balance"] == Decimal("0")

    def test_category_breakdown(self, test_user):
        TransactionFactory(user=test_user, category="Food", amount=Decimal("10"), type="expense")
        TransactionFactory(user=test_user, category="Food", amount=Decimal("15"), type="expense")
        TransactionFactory(user=test_user, category="Food", amount=Decimal("5"), type="income")
        TransactionFactory(user=test_user, category="Rent", amount=Decimal("700"), type="expense")

        rows = ReportService.category_breakdown(Transaction.objects.filter(user=test_user))

        assert [row["category"] for row in rows] == ["Food", "Rent"]
        assert rows[0]["count"] == 3
        assert rows[0]["net"] == Decimal("-20")

    def test_dashboard_summary(self, test_user, test_user2):
        TransactionFactory(user=test_user, date=date(2024, 3, 2), amount=Decimal("100"), type="expense")
        TransactionFactory(user=test_user, date=date(2024, 2, 2), amount=Decimal("40"), type="expense")
        TransactionFactory(user=test_user, date=date(2024, 3, 5), amount=Decimal("1000"), type="income")
        TransactionFactory(user=test_user2, date=date(2024, 3, 5), amount=Decimal("999"), type="income")

        summary = ReportService.dashboard_summary(test_user, today=date(2024, 3, 20))

        assert summary["totals"]["balance"] == Decimal("860")
        assert summary["current_month"] == {
            "month": "2024-03",
            "income": Decimal("1000"),
            "expenses": Decimal("100"),
            "balance": Decimal("900"),
        }
        assert [tx.date for tx in summary["recent_transactions"]] == [
            date(2024, 3, 5),
            date(2024, 3, 2),
            date(2024, 2, 2),
        ]

    def test_recent_transactions_limit(self, test_user, settings):
        settings.TRACKER_RECENT_TRANSACTIONS = 2
        TransactionFactory.create_batch(4, user=test_user)

        summary = ReportService.dashboard_summary(test_user)

        assert len(summary["recent_transactions"]) == 2
