"""
Change feed for transactions and budgets.

Every write made through the services records a ``ChangeEvent`` holding the
row snapshot before and after the change. Clients poll ``events_since`` with
the id of the last event they saw and may exclude the correlation ids of
their own pending mutations.
"""

import json
import logging

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder

from ..models import ChangeEvent

logger = logging.getLogger(__name__)

TRANSACTION_FIELDS = (
    "id",
    "title",
    "amount",
    "date",
    "category",
    "type",
    "description",
    "user_id",
    "created_at",
)
BUDGET_FIELDS = (
    "id",
    "category",
    "amount",
    "period",
    "currency",
    "user_id",
    "created_at",
    "updated_at",
)
TABLE_FIELDS = {
    "transactions": TRANSACTION_FIELDS,
    "budgets": BUDGET_FIELDS,
}


def snapshot(instance, table):
    """JSON-safe dict of the feed columns of a transaction or budget row."""
    data = {name: getattr(instance, name) for name in TABLE_FIELDS[table]}
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


class ChangeFeedService:
    """Records and reads per-user change events."""

    @staticmethod
    def record(user, table, event_type, record_id, new=None, old=None, correlation_id=""):
        """
        Append one event to the user's feed.

        Must be called inside the transaction that performs the write, so the
        event exists if and only if the change was committed.
        """
        event = ChangeEvent.objects.create(
            user=user,
            table=table,
            event_type=event_type,
            record_id=record_id,
            new=new,
            old=old,
            correlation_id=correlation_id or "",
        )
        logger.debug(
            "Change event recorded",
            extra={
                "user_id": user.id,
                "event_id": event.id,
                "table": table,
                "event_type": event_type,
                "record_id": record_id,
                "correlation_id": correlation_id,
                "action": "change_event_recorded",
                "component": "ChangeFeedService",
            },
        )
        return event

    @staticmethod
    def events_since(user, since=0, exclude_correlation_ids=(), table=None, limit=None):
        """
        Events of ``user`` with an id greater than ``since``, oldest first.

        Args:
            user: Feed owner
            since: Cursor, the id of the last event already consumed
            exclude_correlation_ids: Correlation ids whose events are dropped
            table: Optional table filter ("transactions" or "budgets")
            limit: Page size, defaults to TRACKER_CHANGE_FEED_PAGE_SIZE
        """
        limit = limit or getattr(settings, "TRACKER_CHANGE_FEED_PAGE_SIZE", 200)
        queryset = ChangeEvent.objects.filter(user=user, id__gt=since or 0)

        if table:
            queryset = queryset.filter(table=table)

        excluded = [value for value in exclude_correlation_ids if value]
        if excluded:
            queryset = queryset.exclude(correlation_id__in=excluded)

        return list(queryset.order_by("id")[:limit])

    @staticmethod
    def latest_cursor(user):
        last = ChangeEvent.objects.filter(user=user).order_by("-id").values_list("id", flat=True).first()
        return last or 0
