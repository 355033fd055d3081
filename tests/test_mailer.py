from datetime import datetime, timedelta

import pytest

from academy.notifications import mailer as mailer_module
from academy.notifications.mailer import EmailResult, SendGridMailer
from academy.notifications.templates import format_inr, verification_email
from academy.notifications.webhook_router import event_time


class FakeResponse:
    status_code = 202
    headers = {"X-Message-Id": "abc123"}


class FakeSendGridClient:
    calls = []

    def __init__(self, api_key):
        self.api_key = api_key

    def send(self, message):
        FakeSendGridClient.calls.append(message)
        return FakeResponse()


class ExplodingSendGridClient(FakeSendGridClient):
    def send(self, message):
        raise RuntimeError("HTTP Error 401: Unauthorized")


async def test_without_api_key_nothing_is_sent():
    result = await SendGridMailer(None, "no-reply@rhinogeeks.com").send("a@b.co", "s", "t", "<p>t</p>")

    assert result.ok is False
    assert result.error == "no_sendgrid_api_key"


async def test_missing_recipient():
    result = await SendGridMailer("key", "no-reply@rhinogeeks.com").send("", "s", "t", "<p>t</p>")

    assert result.error == "missing_to_address"


async def test_send_reads_message_id(monkeypatch):
    monkeypatch.setattr(mailer_module, "SendGridAPIClient", FakeSendGridClient)

    result = await SendGridMailer("key", "no-reply@rhinogeeks.com").send("a@b.co", "s", "t", "<p>t</p>")

    assert result.ok is True
    assert result.message_id == "abc123"
    assert result.status_code == 202


async def test_provider_error_becomes_result(monkeypatch):
    monkeypatch.setattr(mailer_module, "SendGridAPIClient", ExplodingSendGridClient)

    result = await SendGridMailer("key", "no-reply@rhinogeeks.com").send("a@b.co", "s", "t", "<p>t</p>")

    assert result.ok is False
    assert "401" in result.error


def test_email_meta():
    assert EmailResult(ok=False).to_meta()["error"] == "unknown_error"
    meta = EmailResult(ok=True, message_id="m1", error="ignored").to_meta()
    assert meta["error"] is None
    assert meta["messageId"] == "m1"
    assert meta["lastEvent"] is None


@pytest.mark.parametrize("amount, expected", [(400, "₹400"), (1234.5, "₹1,234.50"), (None, "₹0")])
def test_format_inr(amount, expected):
    assert format_inr(amount) == expected


def test_verification_email_escapes_html():
    subject, text, html = verification_email(
        {"name": "<b>Eve</b>", "course": "Web", "amount": 100, "paymentProof": {"txnId": "T1"}},
        "rejected",
        "admin",
        "bad <script>",
    )

    assert "rejected" in subject
    assert "Admin notes: bad <script>" in text
    assert "&lt;script&gt;" in html
    assert "<b>Eve</b>" not in html


def test_verification_email_without_txn_id():
    subject, text, html = verification_email({"name": "Asha", "course": "Web"}, "verified", "admin")

    assert text.endswith("Transaction ID: N/A")
    assert "<strong>N/A</strong>" in html
    assert "—" not in text + html


def test_event_time_falls_back_to_now():
    assert event_time(1700000000) == datetime(2023, 11, 14, 22, 13, 20)
    for timestamp in (10 ** 20, -(10 ** 20), True, "1700000000", None):
        assert abs(event_time(timestamp) - datetime.utcnow()) < timedelta(minutes=1)


def test_webhook_token_required(client, ctx):
    ctx.config.SENDGRID_WEBHOOK_TOKEN = "s3cret"

    assert client.post("/api/webhooks/sendgrid", json=[]).status_code == 403
    assert client.post("/api/webhooks/sendgrid?token=s3cret", json=[]).json()["received"] == 0
