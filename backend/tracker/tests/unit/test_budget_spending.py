# tracker/tests/unit/test_budget_spending.py

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from tracker.models import Transaction
from tracker.services.budget_service import (ALL_TIME_WINDOW, PERIOD_WINDOW,
                                             BudgetService, period_bounds)


def budget(id=1, category="Food", amount="1000", period="monthly", currency="KES"):
    return {"id": id, "category": category, "amount": Decimal(amount), "period": period, "currency": currency}


def expense(amount, category="Food", on="2024-03-10", type="expense"):
    return {"category": category, "amount": Decimal(amount), "date": on, "type": type}


class TestCalculateBudgetSpending:
    def test_category_match_is_trimmed_and_case_insensitive(self):
        results = BudgetService.calculate_budget_spending(
            [budget(category=" Food ")],
            [expense("100", category="food"), expense("50", category="FOOD  ")],
        )

        assert results[0].current_spending == Decimal("150")

    def test_income_is_ignored(self):
        results = BudgetService.calculate_budget_spending(
            [budget()],
            [expense("100"), expense("900", type="income")],
        )

        assert results[0].current_spending == Decimal("100")

    def test_other_categories_are_ignored(self):
        results = BudgetService.calculate_budget_spending(
            [budget()], [expense("100", category="Transport")]
        )

        assert results[0].current_spending == Decimal("0")
        assert results[0].percentage == Decimal("0")
        assert results[0].is_over_budget is False

    def test_remaining_and_percentage(self):
        item = BudgetService.calculate_budget_spending(
            [budget(amount="400")], [expense("100"), expense("200")]
        )[0]

        assert item.remaining == item.amount - item.current_spending == Decimal("100")
        assert item.percentage == Decimal("75")
        assert item.is_over_budget is False

    def test_over_budget(self):
        item = BudgetService.calculate_budget_spending(
            [budget(amount="100")], [expense("150")]
        )[0]

        assert item.is_over_budget is True
        assert item.remaining == Decimal("-50")
        assert item.percentage == Decimal("150")

    def test_exactly_at_limit_is_not_over(self):
        item = BudgetService.calculate_budget_spending([budget(amount="100")], [expense("100")])[0]

        assert item.is_over_budget is False

    def test_empty_inputs(self):
        assert BudgetService.calculate_budget_spending([], [expense("10")]) == []

        item = BudgetService.calculate_budget_spending([budget()], [])[0]
        assert item.current_spending == Decimal("0")

    def test_order_follows_budgets(self):
        results = BudgetService.calculate_budget_spending(
            [budget(id=2, category="Rent"), budget(id=1)], [expense("5")]
        )

        assert [item.id for item in results] == [2, 1]

    def test_period_window_only_counts_current_period(self):
        results = BudgetService.calculate_budget_spending(
            [budget(period="monthly")],
            [expense("100", on="2024-03-01"), expense("200", on="2024-02-29"), expense("50", on="2024-03-31")],
            window=PERIOD_WINDOW,
            today=date(2024, 3, 15),
        )

        assert results[0].current_spending == Decimal("150")

    def test_all_time_window_counts_everything(self):
        results = BudgetService.calculate_budget_spending(
            [budget(period="weekly")],
            [expense("100", on="2020-01-01"), expense("200", on="2024-03-10")],
            today=date(2024, 3, 15),
        )

        assert results[0].current_spending == Decimal("300")

    def test_unknown_window_is_rejected(self):
        with pytest.raises(ValidationError):
            BudgetService.calculate_budget_spending([budget()], [], window="fortnight")


@pytest.mark.parametrize(
    "period, today, expected",
    [
        ("weekly", date(2024, 3, 14), (date(2024, 3, 11), date(2024, 3, 17))),
        ("weekly", date(2024, 3, 11), (date(2024, 3, 11), date(2024, 3, 17))),
        ("monthly", date(2024, 2, 10), (date(2024, 2, 1), date(2024, 2, 29))),
        ("yearly", date(2024, 7, 4), (date(2024, 1, 1), date(2024, 12, 31))),
    ],
)
def test_period_bounds(period, today, expected):
    assert period_bounds(period, today) == expected


class TestValidateBudgetData:
    def test_defaults(self, settings):
        settings.TRACKER_DEFAULT_CURRENCY = "KES"

        cleaned = BudgetService.validate_budget_data({"category": " Food ", "amount": "99.999"})

        assert cleaned == {
            "category": "Food",
            "amount": Decimal("100.00"),
            "period": "monthly",
            "currency": "KES",
        }

    @pytest.mark.parametrize(
        "data, field",
        [
            ({"category": "", "amount": "10"}, "category"),
            ({"category": "Food", "amount": "0"}, "amount"),
            ({"category": "Food", "amount": "-5"}, "amount"),
            ({"category": "Food", "amount": "1e12"}, "amount"),
            ({"category": "Food", "amount": "10", "period": "daily"}, "period"),
            ({"category": "Food", "amount": "10", "currency": "SHILLING"}, "currency"),
        ],
    )
    def test_invalid(self, data, field):
        with pytest.raises(ValidationError) as excinfo:
            BudgetService.validate_budget_data(data)
        assert field in excinfo.value.message_dict

    def test_partial_only_checks_present_fields(self):
        assert BudgetService.validate_budget_data({"currency": "usd"}, partial=True) == {"currency": "USD"}


@pytest.mark.django_db
class TestBudgetsWithSpending:
    @pytest.fixture
    def old_breach(self, test_user, food_budget):
        return Transaction.objects.create(
            user=test_user,
            title="Wedding catering",
            amount=Decimal("1500.00"),
            date=date(2020, 1, 1),
            category="Food",
            type="expense",
        )

    def test_alternating_windows_fire_breach_once(self, test_user, old_breach):
        today = date(2024, 3, 15)
        fired = [
            len(BudgetService.budgets_with_spending(test_user, window=window, today=today)[1])
            for window in (ALL_TIME_WINDOW, PERIOD_WINDOW, ALL_TIME_WINDOW, PERIOD_WINDOW)
        ]

        assert fired == [1, 0, 0, 0]

    def test_period_window_keeps_its_own_state(self, test_user, food_budget):
        Transaction.objects.create(
            user=test_user,
            title="Party",
            amount=Decimal("1200.00"),
            date=date(2024, 3, 10),
            category="Food",
            type="expense",
        )
        today = date(2024, 3, 15)

        _, all_time_alerts = BudgetService.budgets_with_spending(test_user, today=today)
        _, period_alerts = BudgetService.budgets_with_spending(test_user, window=PERIOD_WINDOW, today=today)
        _, repeat = BudgetService.budgets_with_spending(test_user, window=PERIOD_WINDOW, today=today)

        assert [alert.budget_id for alert in all_time_alerts] == [food_budget.id]
        assert [alert.budget_id for alert in period_alerts] == [food_budget.id]
        assert repeat == []
