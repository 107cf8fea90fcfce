# tracker/tests/unit/test_service_import.py
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError

from tracker.models import Budget, ChangeEvent, Transaction
from tracker.services.import_service import MpesaImportService
from tracker.services.transaction_service import TransactionService
from tracker.utils.mpesa_parser import build_template


@pytest.mark.django_db
class TestImportStatement:
    def test_import_counts(self, test_user, statement_text):
        result = MpesaImportService.import_statement(statement_text, test_user, correlation_id="imp-1")

        assert result["total_rows"] == 5
        assert result["parsed"] == 3
        assert result["imported"] == 3
        assert result["failed"] == 0
        assert [row["reason"] for row in result["skipped"]] == ["not_completed", "no_amount"]
        assert Transaction.objects.filter(user=test_user).count() == 3
        assert set(ChangeEvent.objects.values_list("correlation_id", flat=True)) == {"imp-1"}

    def test_template_import(self, test_user):
        result = MpesaImportService.import_statement(build_template(), test_user)

        assert result["imported"] == 3
        titles = sorted(tx.title for tx in result["transactions"])
        assert titles == [
            "M-Pesa: Airtime Purchase",
            "M-Pesa: Payment to JOE SUPERMARKET",
            "M-Pesa: Received from JOHN DOE",
        ]

    def test_failed_row_does_not_stop_import(self, test_user):
        original = TransactionService.create_transaction
        calls = {"count": 0}

        def flaky_create(user, data, correlation_id=""):
            calls["count"] += 1
            if calls["count"] == 2:
                raise ValidationError({"amount": "rejected"})
            return original(user, data, correlation_id=correlation_id)

        with patch.object(TransactionService, "create_transaction", side_effect=flaky_create):
            result = MpesaImportService.import_statement(build_template(), test_user)

        assert result["imported"] == 2
        assert result["failed"] == 1
        assert Transaction.objects.filter(user=test_user).count() == 2

    def test_import_fires_budget_alert(self, test_user):
        Budget.objects.create(user=test_user, category="Airtime", amount=Decimal("50"))

        result = MpesaImportService.import_statement(build_template(), test_user)

        assert [alert.category for alert in result["alerts"]] == ["Airtime"]
        assert result["alerts"][0].over_by == Decimal("50.00")

    def test_nothing_to_import(self, test_user):
        result = MpesaImportService.import_statement("", test_user)

        assert result["total_rows"] == 0
        assert result["imported"] == 0
        assert result["transactions"] == []


@pytest.mark.django_db
class TestManualEntry:
    def test_send_with_phone_and_reference(self, test_user):
        created = MpesaImportService.create_manual_entry(
            test_user,
            {
                "type": "expense",
                "amount": Decimal("250"),
                "description": "Rent share",
                "date": date(2024, 3, 1),
                "category": "Transfer",
                "phone_number": "0712345678",
                "transaction_id": "QXY123",
            },
        )

        assert created.title == "M-Pesa Send: Rent share"
        assert created.description == "Phone: 0712345678 | ID: QXY123"
        assert created.category == "Transfer"

    def test_receive_without_description(self, test_user):
        created = MpesaImportService.create_manual_entry(
            test_user, {"type": "income", "amount": "100", "date": date(2024, 3, 1)}
        )

        assert created.title == "M-Pesa Receive"
        assert created.category == "Other"
        assert created.description == ""

    def test_plain_description_kept_without_phone(self, test_user):
        created = MpesaImportService.create_manual_entry(
            test_user,
            {"type": "expense", "amount": "80", "date": date(2024, 3, 1), "description": "Bus", "category": "Transport"},
        )

        assert created.description == "Bus"

    def test_unknown_category(self, test_user):
        with pytest.raises(ValidationError):
            MpesaImportService.create_manual_entry(
                test_user, {"type": "expense", "amount": "80", "date": date(2024, 3, 1), "category": "Food"}
            )
