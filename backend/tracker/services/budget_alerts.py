"""
One-shot budget alerts.

Each budget is either *alerted* or *not alerted*. A recomputation that first
sees a budget over its limit fires one alert and marks it alerted; a later
recomputation that sees it back within the limit re-arms it silently, so the
next breach fires again. Deleting a budget drops its state.

State is per process: ``BudgetAlertRegistry`` keeps one tracker per user and
aggregation window in the Django cache and never in the database. After a restart every budget that
is still over its limit fires once more.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Set

from django.conf import settings
from django.core.cache import cache

from ..signals import budget_exceeded

logger = logging.getLogger(__name__)

# Aggregation windows of the budget service, tracked separately
DEFAULT_WINDOW = "all_time"
ALERT_WINDOWS = (DEFAULT_WINDOW, "period")


@dataclass(frozen=True)
class BudgetAlert:
    budget_id: int
    category: str
    currency: str
    limit: Decimal
    spent: Decimal
    over_by: Decimal

    @property
    def message(self) -> str:
        return (
            f"Budget Exceeded! Category: {self.category} "
            f"Limit: {self.currency} {self.limit:.2f} "
            f"Spent: {self.currency} {self.spent:.2f} "
            f"Over by: {self.currency} {self.over_by:.2f}"
        )

    @classmethod
    def from_spending(cls, item) -> "BudgetAlert":
        return cls(
            budget_id=item.id,
            category=item.category,
            currency=item.currency,
            limit=item.amount,
            spent=item.current_spending,
            over_by=abs(item.remaining),
        )

    def as_dict(self) -> dict:
        return {
            "budget_id": self.budget_id,
            "category": self.category,
            "currency": self.currency,
            "limit": str(self.limit),
            "spent": str(self.spent),
            "over_by": str(self.over_by),
            "message": self.message,
        }


class BudgetAlertTracker:
    """
    Alert state machine for the budgets of one user.
    """

    def __init__(self, alerted: Optional[Iterable[int]] = None):
        self.alerted: Set[int] = set(alerted or ())

    def is_alerted(self, budget_id) -> bool:
        return budget_id in self.alerted

    def observe(self, budgets_with_spending) -> List[BudgetAlert]:
        """
        Feed one full recomputation and return the alerts that fire now.

        Budgets missing from the collection are treated as deleted.
        """
        fired = []
        seen = set()

        for item in budgets_with_spending:
            seen.add(item.id)
            if item.is_over_budget:
                if item.id not in self.alerted:
                    self.alerted.add(item.id)
                    fired.append(BudgetAlert.from_spending(item))
            else:
                self.alerted.discard(item.id)

        self.alerted &= seen
        return fired

    def forget(self, budget_id) -> None:
        self.alerted.discard(budget_id)


class BudgetAlertRegistry:
    """
    Per-user trackers stored in the process-local cache.

    Every aggregation window has its own tracker: a budget under its limit
    for the current period must not re-arm a breach seen over all time.
    """

    @staticmethod
    def _cache_key(user_id, window=DEFAULT_WINDOW) -> str:
        prefix = getattr(settings, "TRACKER_BUDGET_ALERT_CACHE_PREFIX", "budget_alerts")
        return f"{prefix}:{user_id}:{window}"

    @classmethod
    def tracker_for(cls, user, window=DEFAULT_WINDOW) -> BudgetAlertTracker:
        return BudgetAlertTracker(cache.get(cls._cache_key(user.id, window), ()))

    @classmethod
    def _store(cls, user, tracker, window=DEFAULT_WINDOW) -> None:
        cache.set(cls._cache_key(user.id, window), sorted(tracker.alerted), timeout=None)

    @classmethod
    def observe(cls, user, budgets_with_spending, window=DEFAULT_WINDOW) -> List[BudgetAlert]:
        """
        Run one recomputation through the user's tracker for ``window`` and
        emit ``budget_exceeded`` for every alert that fires.
        """
        tracker = cls.tracker_for(user, window)
        fired = tracker.observe(budgets_with_spending)
        cls._store(user, tracker, window)

        for alert in fired:
            responses = budget_exceeded.send_robust(sender=cls, user=user, alert=alert)
            for receiver, response in responses:
                if isinstance(response, Exception):
                    logger.error(
                        "Budget alert receiver failed",
                        extra={
                            "user_id": user.id,
                            "budget_id": alert.budget_id,
                            "receiver": getattr(receiver, "__name__", repr(receiver)),
                            "error_type": type(response).__name__,
                            "action": "budget_alert_receiver_failed",
                            "component": "BudgetAlertRegistry",
                            "severity": "medium",
                        },
                    )
        return fired

    @classmethod
    def forget(cls, user, budget_id) -> None:
        for window in ALERT_WINDOWS:
            tracker = cls.tracker_for(user, window)
            tracker.forget(budget_id)
            cls._store(user, tracker, window)

    @classmethod
    def reset(cls, user) -> None:
        cache.delete_many([cls._cache_key(user.id, window) for window in ALERT_WINDOWS])
