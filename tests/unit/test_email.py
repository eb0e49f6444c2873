"""Tests for best-effort email delivery."""

from unittest.mock import MagicMock

import pytest

from src.cars.core.config import get_settings
from src.cars.core.notifications import email
from src.cars.core.notifications.email import _render_html, send_email
from src.cars.services import NotificationService

pytestmark = pytest.mark.unit


@pytest.fixture
def resend_configured(monkeypatch):
    """Settings with a Resend key, and a mocked Emails.send."""
    settings = get_settings().model_copy(update={"resend_api_key": "re_test_key"})
    monkeypatch.setattr(email, "get_settings", lambda: settings)
    send = MagicMock()
    monkeypatch.setattr(email.resend.Emails, "send", send)
    return send


class TestSendEmail:
    def test_no_recipients_is_a_no_op(self, resend_configured):
        assert send_email([], "subject", "body", "notice")
        assert send_email(["", ""], "subject", "body", "notice")
        resend_configured.assert_not_called()

    def test_without_api_key_only_logs(self):
        assert get_settings().resend_api_key is None
        assert send_email(["ops@example.com"], "subject", "body", "notice")

    def test_sends_deduplicated_recipients(self, resend_configured):
        assert send_email(
            ["b@example.com", "a@example.com", "b@example.com"],
            "Low balance",
            "body",
            "billing_alert",
        )

        params = resend_configured.call_args.args[0]
        assert params["to"] == ["a@example.com", "b@example.com"]
        assert params["subject"] == "Low balance"
        assert params["text"] == "body"

    def test_provider_error_returns_false(self, resend_configured):
        resend_configured.side_effect = RuntimeError("provider down")

        assert send_email(["ops@example.com"], "subject", "body", "notice") is False


def test_html_rendering_escapes_body():
    rendered = _render_html("Hello <b>admin</b>\n\nsecond line")

    assert "&lt;b&gt;admin&lt;/b&gt;" in rendered
    assert rendered.count("<p>") == 2


class TestNotificationService:
    async def test_notify_never_raises(self, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("unexpected")

        monkeypatch.setattr("src.cars.services.notification_service.send_email", boom)

        assert await NotificationService(MagicMock()).notify(["a@example.com"], "s", "b") is False

    async def test_notify_admins_uses_admin_emails(self, monkeypatch):
        sent = []
        monkeypatch.setattr(
            "src.cars.services.notification_service.send_email",
            lambda recipients, subject, body, email_type: sent.append(recipients) or True,
        )
        admins = MagicMock()

        async def list_emails(project_id):
            return ["admin@example.com"]

        admins.list_emails = list_emails

        assert await NotificationService(admins).notify_admins("p", "subject", "body")
        assert sent == [["admin@example.com"]]

    async def test_admin_lookup_failure(self):
        admins = MagicMock()

        async def list_emails(project_id):
            raise RuntimeError("db down")

        admins.list_emails = list_emails

        assert await NotificationService(admins).notify_admins("p", "subject", "body") is False
