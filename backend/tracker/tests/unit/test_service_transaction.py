# tracker/tests/unit/test_service_transaction.py
from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from tracker.models import ChangeEvent, Transaction
from tracker.services.transaction_service import TransactionService

VALID_DATA = {
    "title": "  Groceries ",
    "amount": "99.995",
    "date": "2024-03-10",
    "category": " Food ",
    "type": "expense",
    "description": " weekly shop ",
}


class TestTransactionServiceValidation:
    def test_cleans_values(self):
        cleaned = TransactionService.validate_transaction_data(VALID_DATA)

        assert cleaned == {
            "title": "Groceries",
            "amount": Decimal("100.00"),
            "date": date(2024, 3, 10),
            "category": "Food",
            "type": "expense",
            "description": "weekly shop",
        }

    @pytest.mark.parametrize(
        "override, field",
        [
            ({"title": "   "}, "title"),
            ({"category": ""}, "category"),
            ({"amount": "0"}, "amount"),
            ({"amount": "-10"}, "amount"),
            ({"amount": "abc"}, "amount"),
            ({"amount": "10000000000"}, "amount"),
            ({"type": "transfer"}, "type"),
            ({"date": "2024-13-01"}, "date"),
            ({"date": "soon"}, "date"),
        ],
    )
    def test_invalid_field(self, override, field):
        with pytest.raises(ValidationError) as excinfo:
            TransactionService.validate_transaction_data({**VALID_DATA, **override})
        assert field in excinfo.value.message_dict

    def test_missing_fields_reported_together(self):
        with pytest.raises(ValidationError) as excinfo:
            TransactionService.validate_transaction_data({})
        assert set(excinfo.value.message_dict) == {"title", "category", "amount", "type", "date"}

    def test_partial(self):
        assert TransactionService.validate_transaction_data({"amount": "5"}, partial=True) == {
            "amount": Decimal("5.00")
        }


@pytest.mark.django_db
class TestTransactionServiceWrites:
    def test_create_records_insert_event(self, test_user):
        instance = TransactionService.create_transaction(test_user, VALID_DATA, correlation_id="c-1")

        assert instance.user == test_user
        assert instance.amount == Decimal("100.00")

        event = ChangeEvent.objects.get(user=test_user)
        assert (event.table, event.event_type, event.record_id) == ("transactions", "INSERT", instance.id)
        assert event.new["title"] == "Groceries"
        assert event.new["amount"] == "100.00"
        assert event.correlation_id == "c-1"

    def test_invalid_create_writes_nothing(self, test_user):
        with pytest.raises(ValidationError):
            TransactionService.create_transaction(test_user, {**VALID_DATA, "amount": "-1"})

        assert not Transaction.objects.exists()
        assert not ChangeEvent.objects.exists()

    def test_update_records_old_and_new(self, food_expense):
        TransactionService.update_transaction(food_expense, {"amount": "450"}, correlation_id="c-2")

        food_expense.refresh_from_db()
        assert food_expense.amount == Decimal("450.00")
        assert food_expense.title == "Groceries"

        event = ChangeEvent.objects.get(event_type="UPDATE")
        assert event.old["amount"] == "300.00"
        assert event.new["amount"] == "450.00"

    def test_delete_records_old_row(self, food_expense):
        transaction_id = food_expense.id

        TransactionService.delete_transaction(food_expense)

        assert not Transaction.objects.filter(id=transaction_id).exists()
        event = ChangeEvent.objects.get(event_type="DELETE")
        assert event.record_id == transaction_id
        assert event.old["title"] == "Groceries"
        assert event.new is None

    def test_filter_transactions(self, test_user, food_expense, salary_income):
        queryset = Transaction.objects.filter(user=test_user)

        assert list(TransactionService.filter_transactions(queryset, {"type": "income"})) == [salary_income]
        assert list(TransactionService.filter_transactions(queryset, {"category": " food "})) == [food_expense]
        assert list(
            TransactionService.filter_transactions(
                queryset, {"date_from": date(2024, 3, 5), "date_to": date(2024, 3, 31)}
            )
        ) == [food_expense]
        assert TransactionService.filter_transactions(queryset, {"type": "bogus"}).count() == 2
