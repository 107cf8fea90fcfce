"""
Signals for the tracker app.

``budget_exceeded`` is sent once per breach, when a recomputation first sees a
budget go over its limit. Receivers get ``user`` and ``alert``
(a ``BudgetAlert``). It is dispatched with ``send_robust`` so a failing
receiver never breaks the request that triggered the recomputation.
"""

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

budget_exceeded = Signal()


@receiver(budget_exceeded)
def log_budget_exceeded(sender, user, alert, **kwargs):
    logger.warning(
        alert.message,
        extra={
            "user_id": user.id,
            "budget_id": alert.budget_id,
            "category": alert.category,
            "over_by": str(alert.over_by),
            "action": "budget_exceeded",
            "component": "budget_exceeded",
        },
    )
