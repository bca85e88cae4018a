"""Unit tests for the Twilio and SMTP delivery adapters."""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs

import aiosmtplib
import httpx
import pytest

from app.core.delivery.smtp import SmtpEmailSender
from app.core.delivery.twilio import TwilioSmsSender


def twilio_sender(handler, **overrides):
    options = {
        "account_sid": "AC123",
        "auth_token": "secret",
        "from_number": "+15550001111",
        "api_base": "https://twilio.test/2010-04-01",
        "transport": httpx.MockTransport(handler),
    }
    options.update(overrides)
    return TwilioSmsSender(**options)


@pytest.mark.asyncio
async def test_twilio_send_sms_success():
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201, json={"sid": "SM123", "status": "queued"})

    result = await twilio_sender(handler).send_sms(to="+15551234567", body="Hello")

    assert result.success is True
    assert result.message_id == "SM123"

    request = captured[0]
    assert request.method == "POST"
    assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
    assert request.headers["Authorization"].startswith("Basic ")
    form = parse_qs(request.content.decode())
    assert form == {"To": ["+15551234567"], "From": ["+15550001111"], "Body": ["Hello"]}


@pytest.mark.asyncio
async def test_twilio_error_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

    result = await twilio_sender(handler).send_sms(to="+1", body="Hello")

    assert result.success is False
    assert result.error == "Invalid 'To' Phone Number"


@pytest.mark.asyncio
async def test_twilio_error_without_json_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="Service Unavailable")

    result = await twilio_sender(handler).send_sms(to="+15551234567", body="Hello")

    assert result.success is False
    assert result.error == "Twilio returned 503"


@pytest.mark.asyncio
async def test_twilio_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await twilio_sender(handler).send_sms(to="+15551234567", body="Hello")

    assert result.success is False
    assert result.error == "connection refused"


@pytest.mark.asyncio
async def test_twilio_not_configured():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    sender = twilio_sender(handler, auth_token="")

    assert sender.is_configured() is False
    result = await sender.send_sms(to="+15551234567", body="Hello")
    assert result.success is False
    assert result.error == "Twilio is not configured"


@pytest.fixture
def smtp_sender():
    return SmtpEmailSender(
        hostname="smtp.test",
        port=587,
        from_address="noreply@leadly.test",
        username="user",
        password="pass",
    )


def test_smtp_build_message(smtp_sender):
    message = smtp_sender.build_message("ada@example.com", "Welcome", "<p>Hi</p>", "Hi")

    assert message["To"] == "ada@example.com"
    assert message["From"] == "noreply@leadly.test"
    assert message["Subject"] == "Welcome"
    assert message["Message-ID"]
    text_part, html_part = message.get_payload()
    assert text_part.get_content_type() == "text/plain"
    assert html_part.get_content_type() == "text/html"


@pytest.mark.asyncio
async def test_smtp_send_email_success(smtp_sender):
    with patch("app.core.delivery.smtp.aiosmtplib.send", new_callable=AsyncMock) as send:
        result = await smtp_sender.send_email("ada@example.com", "Welcome", "<p>Hi</p>", "Hi")

    assert result.success is True
    message = send.await_args.args[0]
    assert result.message_id == message["Message-ID"]
    kwargs = send.await_args.kwargs
    assert kwargs["hostname"] == "smtp.test"
    assert kwargs["port"] == 587
    assert kwargs["username"] == "user"
    assert kwargs["start_tls"] is True


@pytest.mark.asyncio
async def test_smtp_send_email_failure(smtp_sender):
    with patch(
        "app.core.delivery.smtp.aiosmtplib.send",
        new_callable=AsyncMock,
        side_effect=aiosmtplib.SMTPException("Relay access denied"),
    ):
        result = await smtp_sender.send_email("ada@example.com", "Welcome", "<p>Hi</p>", "Hi")

    assert result.success is False
    assert result.error == "Relay access denied"


def test_factory_returns_none_without_twilio_credentials(settings_override):
    from app.core.delivery import get_sms_sender

    settings_override(TWILIO_ACCOUNT_SID="", TWILIO_AUTH_TOKEN="", TWILIO_PHONE_NUMBER="")
    assert get_sms_sender() is None


def test_factory_builds_configured_senders(settings_override):
    from app.core.delivery import get_email_sender, get_sms_sender

    settings_override(
        TWILIO_ACCOUNT_SID="AC1",
        TWILIO_AUTH_TOKEN="token",
        TWILIO_PHONE_NUMBER="+15550001111",
        SMTP_HOST="smtp.test",
        SMTP_PORT=2525,
    )

    sms_sender = get_sms_sender()
    email_sender = get_email_sender()

    assert isinstance(sms_sender, TwilioSmsSender)
    assert sms_sender.from_number == "+15550001111"
    assert isinstance(email_sender, SmtpEmailSender)
    assert email_sender.port == 2525


def test_email_sender_is_none_by_default(monkeypatch, settings_override):
    from app.core.config_file import Settings
    from app.core.delivery import get_email_sender

    monkeypatch.delenv("SMTP_HOST", raising=False)
    assert Settings(_env_file=None).SMTP_HOST == ""

    settings_override(SMTP_HOST="")
    assert get_email_sender() is None
