"""
Unit Tests for Outgoing Email

Message building and the fire-and-forget delivery path. The autouse
recorder in conftest replaces the public senders, so these tests reach the
module internals directly.
"""

import smtplib

import pytest

from app.core.config import settings
from app.services import notifications


@pytest.fixture
def smtp_settings(monkeypatch):
    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(settings, "SMTP_USER", "mailer")
    monkeypatch.setattr(settings, "SMTP_PASSWORD", "secret")


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.logged_in = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, message):
        FakeSMTP.sent.append((self.host, self.logged_in, message))


class TestDelivery:

    def test_message_has_text_and_html(self):
        message = notifications._build_message("a@example.com", "Hi", "plain body", "<p>html body</p>")

        assert message["To"] == "a@example.com"
        assert message["From"] == settings.EMAIL_FROM
        assert message.is_multipart()
        assert "plain body" in message.get_body(preferencelist=("plain",)).get_content()
        assert "html body" in message.get_body(preferencelist=("html",)).get_content()

    def test_delivers_over_smtp(self, monkeypatch, smtp_settings):
        FakeSMTP.sent = []
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)

        notifications._deliver(notifications._build_message("a@example.com", "Hi", "text", "<p>text</p>"))

        assert len(FakeSMTP.sent) == 1
        host, login, message = FakeSMTP.sent[0]
        assert host == "smtp.example.com"
        assert login == ("mailer", "secret")
        assert message["Subject"] == "Hi"

    def test_delivery_failure_is_swallowed(self, monkeypatch, smtp_settings, caplog):
        def broken(*args, **kwargs):
            raise smtplib.SMTPConnectError(421, "unavailable")

        monkeypatch.setattr(smtplib, "SMTP", broken)

        notifications._deliver(notifications._build_message("a@example.com", "Hi", "text", "<p>text</p>"))

        assert "Email delivery failed" in caplog.text

    def test_no_host_skips_delivery(self, monkeypatch):
        monkeypatch.setattr(settings, "SMTP_HOST", "")

        def must_not_connect(*args, **kwargs):
            raise AssertionError("SMTP should not be used")

        monkeypatch.setattr(smtplib, "SMTP", must_not_connect)
        notifications._deliver(notifications._build_message("a@example.com", "Hi", "text", "<p>text</p>"))

    def test_missing_recipient_not_queued(self):
        assert notifications._submit(None, "Hi", "text", "<p>text</p>") is False
