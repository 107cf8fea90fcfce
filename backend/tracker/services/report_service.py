"""
Dashboard figures computed from a user's transactions.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db.models import Case, Count, DecimalField, Sum, Value, When
from django.db.models.functions import Abs, Coalesce
from django.utils import timezone

from ..models import Transaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _sum_by_type(transaction_type):
    return Coalesce(
        Sum(
            Case(
                When(type=transaction_type, then=Abs("amount")),
                default=Value(ZERO),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            )
        ),
        Value(ZERO),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )


class ReportService:
    """
    Read-only aggregates for the dashboard.
    """

    @staticmethod
    def totals(queryset):
        """Income, expense (absolute) and balance of a transaction queryset."""
        sums = queryset.aggregate(
            income=_sum_by_type("income"),
            expenses=_sum_by_type("expense"),
        )
        return {
            "income": sums["income"],
            "expenses": sums["expenses"],
            "balance": sums["income"] - sums["expenses"],
        }

    @staticmethod
    def category_breakdown(queryset):
        """
        Per-category income, expense and net, most active categories first.
        """
        rows = (
            queryset.values("category")
            .annotate(
                income=_sum_by_type("income"),
                expense=_sum_by_type("expense"),
                count=Count("id"),
            )
            .order_by("-count", "category")
        )
        return [
            {
                "category": row["category"],
                "income": row["income"],
                "expense": row["expense"],
                "net": row["income"] - row["expense"],
                "count": row["count"],
            }
            for row in rows
        ]

    @staticmethod
    def dashboard_summary(user, today=None):
        """
        Overview for the dashboard.

        Returns:
            dict: ``totals`` (all time), ``current_month`` totals,
            ``recent_transactions`` (newest first) and ``categories``
        """
        today = today or timezone.localdate()
        queryset = Transaction.objects.filter(user=user)
        month_queryset = queryset.filter(
            date__year=today.year, date__month=today.month
        )
        recent_limit = getattr(settings, "TRACKER_RECENT_TRANSACTIONS", 5)

        summary = {
            "totals": ReportService.totals(queryset),
            "current_month": {
                "month": today.strftime("%Y-%m"),
                **ReportService.totals(month_queryset),
            },
            "recent_transactions": list(queryset.order_by("-date", "-created_at")[:recent_limit]),
            "categories": ReportService.category_breakdown(queryset),
        }

        logger.debug(
            "Dashboard summary computed",
            extra={
                "user_id": user.id,
                "month": summary["current_month"]["month"],
                "category_count": len(summary["categories"]),
                "action": "dashboard_summary",
                "component": "ReportService",
            },
        )
        return summary
