"""Unit tests for GmailEventFormatter."""

import pytest

from infrastructure.notifications.formatters import GmailEventFormatter
from tests.factories.notifications import make_event


@pytest.fixture
def formatter():
    return GmailEventFormatter(app_url="https://app.example.com")


@pytest.mark.unit
class TestGmailEventFormatter:
    def test_deliverable_submitted_goes_to_mentor(self, formatter):
        event = make_event(
            "deliverable.submitted",
            {
                "id": "d-1",
                "deliverable_name": "Business plan",
                "project_name": "Café",
                "mentor_email": "mentor@example.com",
                "organisation_email": "org@example.com",
            },
            organisation_id="org-9",
        )

        message = formatter.format_event(event)

        assert message["to"] == ["mentor@example.com"]
        assert message["cc"] == [] and message["bcc"] == []
        assert message["is_html"] is True
        assert message["subject"] == "📤 Nouveau livrable soumis : Business plan"
        assert "https://app.example.com/organisation/org-9/projets" in message["body"]
        assert "<li><strong>Projet :</strong> Café</li>" in message["body"]

    def test_no_recipient_skips_message(self, formatter):
        """Messages without any recipient are not sent."""
        event = make_event("deliverable.submitted", {"name": "BP"})

        assert formatter.format_event(event) is None

    def test_event_filter_from_settings(self, formatter):
        event = make_event("project.created", {"organisation_email": "org@example.com"})

        assert formatter.format_event(event, {"events": ["comment.added"]}) is None
        assert formatter.format_event(event, {"events": ["project.created"]}) is not None

    def test_reviewed_rejected(self, formatter):
        event = make_event(
            "deliverable.reviewed",
            {"name": "BP", "status": "rejected", "user_email": "e@example.com"},
        )

        message = formatter.format_event(event)

        assert message["subject"] == "❌ Livrable refusé ❌ : BP"
        assert "N/A/10" in message["body"]
        assert "Aucun commentaire" in message["body"]

    def test_values_are_html_escaped(self, formatter):
        event = make_event(
            "comment.added",
            {"comment": "<script>alert(1)</script>", "recipient_email": "r@example.com"},
        )

        message = formatter.format_event(event)

        assert "<script>" not in message["body"]
        assert "&lt;script&gt;" in message["body"]

    def test_event_created_mails_attendees(self, formatter):
        event = make_event(
            "event.created",
            {"title": "Demo day", "attendees": ["a@example.com", "", "b@example.com"]},
        )

        message = formatter.format_event(event)

        assert message["to"] == ["a@example.com", "b@example.com"]
        assert "À définir" in message["body"]

    def test_unlisted_type_skipped(self, formatter):
        event = make_event("project.updated", {"organisation_email": "org@example.com"})

        assert formatter.format_event(event) is None
