"""
Budget service: budget CRUD and the spending aggregation.

Spending is never stored. ``calculate_budget_spending`` recomputes every
budget against the full transaction list on each call (O(budgets x
transactions)). A transaction counts towards a budget when it is an expense
and its category equals the budget category after trimming and lower-casing.

By default all transactions count regardless of date. With
``window=PERIOD_WINDOW`` only transactions inside the budget's current
calendar period (ISO week from Monday, calendar month or calendar year that
contains ``today``) count.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from ..models import Budget, Transaction
from .budget_alerts import BudgetAlertRegistry
from .change_feed import ChangeFeedService, snapshot
from .transaction_service import CENT, MAX_AMOUNT

logger = logging.getLogger(__name__)

ALL_TIME_WINDOW = "all_time"
PERIOD_WINDOW = "period"
WINDOWS = (ALL_TIME_WINDOW, PERIOD_WINDOW)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
BUDGET_PERIODS = {choice for choice, _ in Budget.PERIOD_CHOICES}


def _value(obj, name, default=None):
    """Read a field from a model instance or a plain mapping."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return ZERO


def _date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parse_date(value[:10])
        except ValueError:
            return None
    return None


def normalize_category(value) -> str:
    return str(value or "").strip().lower()


def period_bounds(period: str, today: date) -> Tuple[date, date]:
    """First and last day of the calendar period containing ``today``."""
    if period == "weekly":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if period == "yearly":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


@dataclass
class BudgetWithSpending:
    """A budget together with its derived spending figures."""

    budget: Any
    current_spending: Decimal

    @property
    def id(self):
        return _value(self.budget, "id")

    @property
    def category(self) -> str:
        return _value(self.budget, "category", "")

    @property
    def amount(self) -> Decimal:
        return _decimal(_value(self.budget, "amount"))

    @property
    def period(self) -> str:
        return _value(self.budget, "period", "monthly")

    @property
    def currency(self) -> str:
        return _value(self.budget, "currency", "") or getattr(
            settings, "TRACKER_DEFAULT_CURRENCY", "KES"
        )

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.current_spending

    @property
    def percentage(self) -> Decimal:
        if self.amount <= 0:
            return ZERO
        return self.current_spending / self.amount * HUNDRED

    @property
    def is_over_budget(self) -> bool:
        return self.current_spending > self.amount


class BudgetService:
    """
    Budget operations and spending aggregation.
    """

    @staticmethod
    def calculate_budget_spending(
        budgets: Iterable,
        transactions: Iterable,
        window: str = ALL_TIME_WINDOW,
        today: Optional[date] = None,
    ) -> List[BudgetWithSpending]:
        """
        Derive spending for every budget from the full transaction list.

        Args:
            budgets: Budget instances or mappings (id, category, amount, ...)
            transactions: Transaction instances or mappings
            window: ``all_time`` or ``period``
            today: Reference day for the period window

        Returns:
            list[BudgetWithSpending]: One entry per budget, same order
        """
        if window not in WINDOWS:
            raise ValidationError({"window": f"Window must be one of {', '.join(WINDOWS)}."})

        today = today or timezone.localdate()
        expenses = [
            (normalize_category(_value(tx, "category")), _date(_value(tx, "date")), _decimal(_value(tx, "amount")))
            for tx in transactions
            if _value(tx, "type") == "expense"
        ]

        results = []
        for budget in budgets:
            key = normalize_category(_value(budget, "category"))
            bounds = None
            if window == PERIOD_WINDOW:
                bounds = period_bounds(_value(budget, "period", "monthly"), today)

            spending = ZERO
            for category, tx_date, amount in expenses:
                if category != key:
                    continue
                if bounds and (tx_date is None or not bounds[0] <= tx_date <= bounds[1]):
                    continue
                spending += abs(amount)

            results.append(BudgetWithSpending(budget=budget, current_spending=spending))

        return results

    @staticmethod
    def budgets_with_spending(user, window=ALL_TIME_WINDOW, today=None):
        """
        Aggregate the user's budgets and run the result through the alert
        tracker.

        Returns:
            tuple: (list[BudgetWithSpending], list[BudgetAlert] fired now)
        """
        budgets = list(Budget.objects.filter(user=user))
        transactions = list(
            Transaction.objects.filter(user=user, type="expense").only(
                "id", "category", "amount", "date", "type"
            )
        )
        results = BudgetService.calculate_budget_spending(
            budgets, transactions, window=window, today=today
        )
        alerts = BudgetAlertRegistry.observe(user, results, window=window)

        logger.debug(
            "Budget spending recomputed",
            extra={
                "user_id": user.id,
                "budget_count": len(budgets),
                "transaction_count": len(transactions),
                "window": window,
                "alerts_fired": len(alerts),
                "action": "budget_spending_recomputed",
                "component": "BudgetService",
            },
        )
        return results, alerts

    @staticmethod
    def validate_budget_data(data, partial=False):
        errors = {}
        cleaned = {}

        if "category" in data or not partial:
            category = str(data.get("category") or "").strip()
            if not category:
                errors["category"] = "Category is required."
            cleaned["category"] = category

        if "amount" in data or not partial:
            amount = _decimal(data.get("amount"))
            if amount.is_finite() and ZERO < amount < MAX_AMOUNT:
                amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
            if not amount.is_finite() or amount <= 0:
                errors["amount"] = "Amount must be greater than zero."
            elif amount >= MAX_AMOUNT:
                errors["amount"] = "Amount is too large."
            cleaned["amount"] = amount

        if "period" in data or not partial:
            period = data.get("period") or "monthly"
            if period not in BUDGET_PERIODS:
                errors["period"] = "Period must be weekly, monthly or yearly."
            cleaned["period"] = period

        if "currency" in data or not partial:
            currency = str(
                data.get("currency") or getattr(settings, "TRACKER_DEFAULT_CURRENCY", "KES")
            ).strip().upper()
            if len(currency) != 3:
                errors["currency"] = "Currency must be a 3-letter code."
            cleaned["currency"] = currency

        if errors:
            raise ValidationError(errors)
        return cleaned

    @staticmethod
    @transaction.atomic
    def create_budget(user, data, correlation_id=""):
        cleaned = BudgetService.validate_budget_data(data)
        budget = Budget.objects.create(user=user, **cleaned)

        ChangeFeedService.record(
            user,
            "budgets",
            "INSERT",
            budget.id,
            new=snapshot(budget, "budgets"),
            correlation_id=correlation_id,
        )
        logger.info(
            "Budget created",
            extra={
                "user_id": user.id,
                "budget_id": budget.id,
                "period": budget.period,
                "correlation_id": correlation_id,
                "action": "budget_created",
                "component": "BudgetService",
            },
        )
        return budget

    @staticmethod
    @transaction.atomic
    def update_budget(budget, data, correlation_id=""):
        cleaned = BudgetService.validate_budget_data(data, partial=True)
        old = snapshot(budget, "budgets")

        for name, value in cleaned.items():
            setattr(budget, name, value)
        budget.save()
        budget.refresh_from_db()

        ChangeFeedService.record(
            budget.user,
            "budgets",
            "UPDATE",
            budget.id,
            new=snapshot(budget, "budgets"),
            old=old,
            correlation_id=correlation_id,
        )
        logger.info(
            "Budget updated",
            extra={
                "user_id": budget.user_id,
                "budget_id": budget.id,
                "updated_fields": sorted(cleaned),
                "correlation_id": correlation_id,
                "action": "budget_updated",
                "component": "BudgetService",
            },
        )
        return budget

    @staticmethod
    @transaction.atomic
    def delete_budget(budget, correlation_id=""):
        """Delete a budget and drop its alert state."""
        user = budget.user
        budget_id = budget.id
        old = snapshot(budget, "budgets")
        budget.delete()

        ChangeFeedService.record(
            user, "budgets", "DELETE", budget_id, old=old, correlation_id=correlation_id
        )
        BudgetAlertRegistry.forget(user, budget_id)

        logger.info(
            "Budget deleted",
            extra={
                "user_id": user.id,
                "budget_id": budget_id,
                "correlation_id": correlation_id,
                "action": "budget_deleted",
                "component": "BudgetService",
            },
        )
