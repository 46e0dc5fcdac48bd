import smtplib

import pytest

from therapy_booking.app import config, mailer


class FakeSMTP:
    """Plain SMTP connection double that records what the mailer did with it."""

    connections = []

    def __init__(self, host, port, timeout=None, starttls_error=None):
        self.host = host
        self.port = port
        self.starttls_error = starttls_error
        self.sent = []
        self.closed = False
        FakeSMTP.connections.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def starttls(self, context=None):
        if self.starttls_error:
            raise self.starttls_error

    def login(self, user, password):
        pass

    def sendmail(self, sender, recipients, body):
        self.sent.append((sender, recipients))


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.connections = []
    monkeypatch.setattr(config, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(config, "SMTP_SECURE", False)
    monkeypatch.setattr(config, "SMTP_FROM", "noreply@example.com")
    monkeypatch.setattr(mailer.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_send_email_over_starttls(smtp):
    assert mailer.send_email("client@example.com", "Hello", "<p>Hi</p>", "Hi") is True

    connection, = smtp.connections
    assert connection.sent == [("noreply@example.com", ["client@example.com"])]
    assert connection.closed


def test_connection_is_closed_when_starttls_fails(smtp, monkeypatch):
    error = smtplib.SMTPNotSupportedError("STARTTLS extension not supported by server.")
    monkeypatch.setattr(mailer.smtplib, "SMTP",
                        lambda host, port, timeout=None: FakeSMTP(host, port, timeout, starttls_error=error))

    with pytest.raises(smtplib.SMTPNotSupportedError):
        mailer.send_email("client@example.com", "Hello", "<p>Hi</p>", "Hi")

    connection, = smtp.connections
    assert connection.sent == []
    assert connection.closed


def test_send_email_is_skipped_without_smtp_host(monkeypatch):
    monkeypatch.setattr(config, "SMTP_HOST", "")
    assert mailer.send_email("client@example.com", "Hello", "<p>Hi</p>", "Hi") is False


def test_deliver_logged_swallows_delivery_errors(caplog):
    def failing_send(to, *args):
        raise smtplib.SMTPException("mailbox unavailable")

    mailer.deliver_logged(failing_send, "client@example.com", "token", "Test")
    assert "Failed to deliver failing_send to client@example.com" in caplog.text
