import smtplib

from uptovia.services.email_sender import EmailConfig, EmailSenderService, parse_recipients


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = username

    def sendmail(self, from_addr, recipients, message):
        self.sent.append((from_addr, recipients, message))


def config(**overrides) -> EmailConfig:
    values = dict(
        host="smtp.example.com",
        port=587,
        username="alerts@example.com",
        password="secret",
        to_address="ops@example.com, oncall@example.com",
    )
    values.update(overrides)
    return EmailConfig(**values)


def test_parse_recipients() -> None:
    assert parse_recipients(" a@x.io, ,b@x.io ") == ["a@x.io", "b@x.io"]
    assert parse_recipients("") == []


def test_is_configured_requires_host_and_recipient() -> None:
    assert EmailSenderService(config()).is_configured is True
    assert EmailSenderService(config(host="")).is_configured is False
    assert EmailSenderService(config(to_address=" , ")).is_configured is False


async def test_send_email_uses_starttls_and_login(monkeypatch) -> None:
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)

    assert await EmailSenderService(config()).send_email("DOWN - API - http", "body") is True

    server = FakeSMTP.instances[0]
    assert server.started_tls is True
    assert server.logged_in == "alerts@example.com"
    from_addr, recipients, message = server.sent[0]
    assert from_addr == "alerts@example.com"
    assert recipients == ["ops@example.com", "oncall@example.com"]
    assert "Subject: DOWN - API - http" in message


async def test_connection_failure_returns_false(monkeypatch) -> None:
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(smtplib, "SMTP", refuse)
    assert await EmailSenderService(config()).send_email("s", "b") is False


async def test_unconfigured_send_returns_false() -> None:
    assert await EmailSenderService(config(host="")).send_email("s", "b") is False
