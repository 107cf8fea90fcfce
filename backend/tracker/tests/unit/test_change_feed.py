# tracker/tests/unit/test_change_feed.py
import pytest

from tracker.services.change_feed import ChangeFeedService


@pytest.mark.django_db
class TestChangeFeedService:
    def record(self, user, record_id, correlation_id="", table="transactions"):
        return ChangeFeedService.record(
            user, table, "INSERT", record_id, new={"id": record_id}, correlation_id=correlation_id
        )

    def test_events_since_cursor(self, test_user):
        first = self.record(test_user, 1)
        second = self.record(test_user, 2)

        assert ChangeFeedService.events_since(test_user) == [first, second]
        assert ChangeFeedService.events_since(test_user, since=first.id) == [second]
        assert ChangeFeedService.latest_cursor(test_user) == second.id

    def test_scoped_to_user(self, test_user, test_user2):
        self.record(test_user2, 1)

        assert ChangeFeedService.events_since(test_user) == []
        assert ChangeFeedService.latest_cursor(test_user) == 0

    def test_exclude_correlation_ids(self, test_user):
        self.record(test_user, 1, correlation_id="mine")
        other = self.record(test_user, 2, correlation_id="theirs")
        plain = self.record(test_user, 3)

        events = ChangeFeedService.events_since(test_user, exclude_correlation_ids=["mine", ""])

        assert events == [other, plain]

    def test_table_filter_and_limit(self, test_user):
        self.record(test_user, 1)
        budget_event = self.record(test_user, 2, table="budgets")
        self.record(test_user, 3)

        assert ChangeFeedService.events_since(test_user, table="budgets") == [budget_event]
        assert len(ChangeFeedService.events_since(test_user, limit=2)) == 2
