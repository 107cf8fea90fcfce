"""
Client-side reconciliation of the change feed.

A ``FeedReconciler`` holds one consumer's copy of the transaction and budget
rows. Local mutations are applied optimistically and remembered as pending
under their correlation id. When the feed later delivers the echo of such a
mutation (same correlation id, table and record id) it is dropped instead of
being applied a second time. An echo may also arrive before the local apply;
that is only tracked for correlation ids issued by ``new_correlation_id``,
so foreign events leave no state behind. Every other event is applied idempotently by
record id. Budget spending is recomputed in full after any change.
"""

import logging
import uuid

from .budget_alerts import BudgetAlertTracker
from .budget_service import ALL_TIME_WINDOW, BudgetService
from .change_feed import ChangeFeedService, snapshot

logger = logging.getLogger(__name__)

TABLES = ("transactions", "budgets")


def _field(event, name):
    if isinstance(event, dict):
        return event.get(name)
    return getattr(event, name)


class FeedReconciler:
    """
    Local row state for one feed consumer.

    Args:
        transactions: Initial transaction rows (mappings with an ``id``)
        budgets: Initial budget rows
        cursor: Id of the last feed event already reflected in the rows
        window: Aggregation window passed to the spending calculation
    """

    def __init__(self, transactions=(), budgets=(), cursor=0, window=ALL_TIME_WINDOW):
        self.rows = {
            "transactions": {row["id"]: dict(row) for row in transactions},
            "budgets": {row["id"]: dict(row) for row in budgets},
        }
        self.cursor = cursor
        self.window = window
        self.pending = set()
        self._issued = set()
        self._echoed_first = set()
        self.alert_tracker = BudgetAlertTracker()

    @classmethod
    def for_user(cls, user, window=ALL_TIME_WINDOW):
        """Start from the user's current rows and the latest feed cursor."""
        cursor = ChangeFeedService.latest_cursor(user)
        return cls(
            transactions=[snapshot(tx, "transactions") for tx in user.transactions.all()],
            budgets=[snapshot(budget, "budgets") for budget in user.budgets.all()],
            cursor=cursor,
            window=window,
        )

    def new_correlation_id(self):
        """
        Issue the id to send with a mutation before applying it locally.

        Only issued ids can have their echo arrive ahead of ``apply_local``.
        """
        correlation_id = uuid.uuid4().hex
        self._issued.add(correlation_id)
        return correlation_id

    @property
    def transactions(self):
        return list(self.rows["transactions"].values())

    @property
    def budgets(self):
        return list(self.rows["budgets"].values())

    def _apply(self, table, event_type, record_id, row):
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        if event_type == "DELETE":
            self.rows[table].pop(record_id, None)
        elif event_type in ("INSERT", "UPDATE"):
            self.rows[table][record_id] = dict(row or {}, id=record_id)
        else:
            raise ValueError(f"Unknown event type: {event_type}")

    def apply_local(self, table, event_type, row=None, record_id=None, correlation_id=None):
        """
        Apply a mutation this consumer made itself.

        Returns:
            str: The correlation id the mutation is tracked under
        """
        correlation_id = correlation_id or self.new_correlation_id()
        record_id = record_id if record_id is not None else (row or {}).get("id")
        key = (correlation_id, table, record_id)

        self._apply(table, event_type, record_id, row)
        self._issued.discard(correlation_id)
        if key in self._echoed_first:
            self._echoed_first.discard(key)
        else:
            self.pending.add(key)
        return correlation_id

    def apply_remote(self, event) -> bool:
        """
        Apply one feed event.

        Returns:
            bool: False when the event was the echo of a pending local
            mutation and was dropped
        """
        event_id = _field(event, "id") or 0
        table = _field(event, "table")
        event_type = _field(event, "event_type")
        record_id = _field(event, "record_id")
        correlation_id = _field(event, "correlation_id") or ""
        self.cursor = max(self.cursor, event_id)

        key = (correlation_id, table, record_id)
        if correlation_id and key in self.pending:
            self.pending.discard(key)
            logger.debug(
                "Echo of local mutation dropped",
                extra={
                    "event_id": event_id,
                    "table": table,
                    "record_id": record_id,
                    "correlation_id": correlation_id,
                    "action": "feed_echo_dropped",
                    "component": "FeedReconciler",
                },
            )
            return False

        row = _field(event, "new") if event_type != "DELETE" else None
        self._apply(table, event_type, record_id, row)
        if correlation_id in self._issued:
            self._echoed_first.add(key)
        return True

    def pull(self, user):
        """
        Fetch and apply every event after the cursor.

        Returns:
            int: Number of events applied (echoes excluded)
        """
        applied = 0
        while True:
            events = ChangeFeedService.events_since(user, since=self.cursor)
            if not events:
                return applied
            applied += sum(1 for event in events if self.apply_remote(event))

    def budgets_with_spending(self, today=None):
        """
        Recompute every budget against the current rows.

        Returns:
            tuple: (list[BudgetWithSpending], list[BudgetAlert] fired now)
        """
        results = BudgetService.calculate_budget_spending(
            self.budgets, self.transactions, window=self.window, today=today
        )
        return results, self.alert_tracker.observe(results)
