"""Unit tests for InMemoryIntegrationStore."""

from datetime import timedelta

import pytest

from infrastructure.notifications.errors import StoreError
from infrastructure.notifications.models import IntegrationStatus
from infrastructure.notifications.store import InMemoryIntegrationStore
from tests.factories.notifications import FIXED_NOW, make_integration, make_log_entry


@pytest.mark.unit
class TestQueryIntegrations:
    """Tests for principal scoping and status filtering."""

    @pytest.fixture
    def populated_store(self):
        return InMemoryIntegrationStore(
            integrations=[
                make_integration("a", organisation_id="org-1", user_id="u-1"),
                make_integration(
                    "b",
                    organisation_id="org-1",
                    user_id="u-2",
                    status=IntegrationStatus.ERROR,
                ),
                make_integration("c", organisation_id="org-2", user_id="u-1"),
                make_integration("d", organisation_id=None, user_id="u-1"),
            ]
        )

    def test_organisation_scope(self, populated_store):
        """Organisation id selects every record of the organisation."""
        records = populated_store.query_integrations(organisation_id="org-1")

        assert {r.id for r in records} == {"a", "b"}

    def test_organisation_takes_precedence_over_user(self, populated_store):
        records = populated_store.query_integrations(
            user_id="u-1", organisation_id="org-2"
        )

        assert [r.id for r in records] == ["c"]

    def test_user_scope(self, populated_store):
        records = populated_store.query_integrations(user_id="u-1")

        assert {r.id for r in records} == {"a", "c", "d"}

    def test_status_filter(self, populated_store):
        records = populated_store.query_integrations(
            organisation_id="org-1", status=IntegrationStatus.CONNECTED
        )

        assert [r.id for r in records] == ["a"]

    def test_no_principal_returns_nothing(self, populated_store):
        """A query without owner never returns every record."""
        assert populated_store.query_integrations() == []

    def test_returned_records_are_copies(self, populated_store):
        """Mutating a returned record does not change the store."""
        record = populated_store.get_integration("a")
        record.settings["events"].append("member.joined")

        assert populated_store.get_integration("a").settings["events"] == [
            "project.created"
        ]


@pytest.mark.unit
class TestUpdateIntegration:
    def test_patches_fields(self, store):
        store.add_integration(make_integration("a"))

        store.update_integration(
            "a", {"status": IntegrationStatus.ERROR, "error_message": "boom"}
        )

        record = store.get_integration("a")
        assert record.status == IntegrationStatus.ERROR
        assert record.error_message == "boom"

    def test_missing_record_raises(self, store):
        with pytest.raises(StoreError):
            store.update_integration("missing", {"status": IntegrationStatus.ERROR})

    def test_unknown_field_rejected(self, store):
        """Only dispatcher-owned fields can be patched."""
        store.add_integration(make_integration("a"))

        with pytest.raises(StoreError):
            store.update_integration("a", {"organisation_id": "org-9"})

    def test_get_missing_returns_none(self, store):
        assert store.get_integration("nope") is None

    def test_remove_integration(self, store):
        store.add_integration(make_integration("a"))

        store.remove_integration("a")

        assert store.get_integration("a") is None


@pytest.mark.unit
class TestLogs:
    def test_newest_first(self, store):
        """Rows come back by created_at descending."""
        store.insert_log(make_log_entry(created_at=FIXED_NOW, event_type="first"))
        store.insert_log(
            make_log_entry(created_at=FIXED_NOW + timedelta(minutes=1), event_type="second")
        )

        rows = store.query_logs("int-1")

        assert [r.event_type for r in rows] == ["second", "first"]

    def test_same_timestamp_latest_insert_first(self, store):
        store.insert_log(make_log_entry(event_type="first"))
        store.insert_log(make_log_entry(event_type="second"))

        rows = store.query_logs("int-1")

        assert [r.event_type for r in rows] == ["second", "first"]

    def test_limit_and_scope(self, store):
        for _ in range(5):
            store.insert_log(make_log_entry("int-1"))
        store.insert_log(make_log_entry("int-2"))

        assert len(store.query_logs("int-1", limit=3)) == 3
        assert len(store.query_logs("int-2")) == 1
