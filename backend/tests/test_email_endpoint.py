import base64

import pytest

from backend.app.api.deps import get_mailer
from backend.services.errors import InvalidInput
from backend.services.mailer import (
    Attachment,
    MailerError,
    SmtpMailer,
    build_message,
    decode_attachment,
)


class FakeMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, *, to, subject, html, attachments=()):
        if self.fail:
            raise MailerError("SMTP relay refused the message")
        self.sent.append({"to": to, "subject": subject, "html": html, "attachments": list(attachments)})
        return "<fake-1@kikiks>"


@pytest.fixture
def mailer(client):
    from backend.app.main import app

    fake = FakeMailer()
    app.dependency_overrides[get_mailer] = lambda: fake
    return fake


def test_send_uses_defaults(client, mailer):
    r = client.post("/v1/send-email", json={"to": "buyer@example.com"})

    assert r.status_code == 200, r.text
    assert r.json() == {"data": {"message_id": "<fake-1@kikiks>"}}
    sent = mailer.sent[0]
    assert sent["to"] == ["buyer@example.com"]
    assert sent["subject"] == "New Order Receipt"
    assert sent["html"] == "<p>Thank you for your order!</p>"


def test_send_with_pdf_attachment(client, mailer):
    pdf = b"%PDF-1.4 fake"
    r = client.post(
        "/v1/send-email",
        json={
            "to": ["a@example.com", "b@example.com"],
            "subject": "Receipt #12",
            "html": "<b>hi</b>",
            "attachments": [
                {
                    "filename": "receipt.pdf",
                    "content": base64.b64encode(pdf).decode(),
                    "content_type": "application/pdf",
                }
            ],
        },
    )

    assert r.status_code == 200
    att = mailer.sent[0]["attachments"][0]
    assert att.filename == "receipt.pdf"
    assert att.content == pdf
    assert att.content_type == "application/pdf"


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"{}",
        b'{"to": ""}',
        b'{"to": "x@example.com", "attachments": [{"filename": "a.pdf", "content": "%%%"}]}',
    ],
)
def test_bad_requests_are_400(client, mailer, body):
    r = client.post("/v1/send-email", content=body, headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert "error" in r.json()
    assert mailer.sent == []


def test_other_methods_are_405(client, mailer):
    r = client.get("/v1/send-email")

    assert r.status_code == 405
    assert r.json() == {"error": "Method not allowed"}


def test_send_failure_is_500(client):
    from backend.app.main import app

    app.dependency_overrides[get_mailer] = lambda: FakeMailer(fail=True)
    r = client.post("/v1/send-email", json={"to": "buyer@example.com"})

    assert r.status_code == 500
    assert r.json() == {"error": "SMTP relay refused the message"}


def test_unconfigured_smtp_is_500(client):
    # EMAIL_USER / EMAIL_PASS are blank in the test environment
    r = client.post("/v1/send-email", json={"to": "buyer@example.com"})

    assert r.status_code == 500
    assert "not configured" in r.json()["error"]


def test_build_message_headers_and_parts():
    msg = build_message(
        sender='"Kikiks Inventory" <orders@kikiks.ph>',
        to=["a@example.com"],
        subject="Receipt",
        html="<p>x</p>",
        attachments=[Attachment("r.pdf", b"%PDF", "application/pdf")],
    )

    assert msg["From"] == '"Kikiks Inventory" <orders@kikiks.ph>'
    assert msg["Message-ID"].endswith("@kikiks.ph>")
    assert [p.get_filename() for p in msg.iter_attachments()] == ["r.pdf"]


def test_decode_attachment_rejects_unknown_encoding():
    with pytest.raises(InvalidInput):
        decode_attachment("a.txt", "hello", encoding="rot13")
    assert decode_attachment("a.txt", "hello", encoding="utf-8").content == b"hello"


def test_smtp_mailer_requires_credentials():
    m = SmtpMailer(host="smtp.example.com", port=587, username=None, password=None)
    with pytest.raises(MailerError):
        m.send(to=["a@example.com"], subject="s", html="h")
