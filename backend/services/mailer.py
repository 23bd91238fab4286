from __future__ import annotations

import base64
import binascii
import logging
import smtplib
from dataclasses import dataclass, field
from email import policy
from email.message import EmailMessage
from email.utils import make_msgid
from ssl import create_default_context
from typing import Sequence

from backend.app.core.config import Settings
from backend.services.errors import InvalidInput

logger = logging.getLogger(__name__)

SENDER_NAME = "Kikiks Inventory"
DEFAULT_SUBJECT = "New Order Receipt"
DEFAULT_HTML = "<p>Thank you for your order!</p>"


class MailerError(RuntimeError):
    pass


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


def decode_attachment(
    filename: str,
    content: str,
    encoding: str = "base64",
    content_type: str | None = None,
) -> Attachment:
    if encoding == "base64":
        try:
            data = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidInput(f"Attachment {filename} is not valid base64") from exc
    elif encoding in ("utf-8", "utf8", "text"):
        data = content.encode("utf-8")
    else:
        raise InvalidInput(f"Unsupported attachment encoding '{encoding}'")
    return Attachment(filename=filename, content=data, content_type=content_type or "application/octet-stream")


def build_message(
    *,
    sender: str,
    to: Sequence[str],
    subject: str,
    html: str,
    attachments: Sequence[Attachment] = (),
) -> EmailMessage:
    message = EmailMessage(policy=policy.default)
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = ", ".join(to)
    message["Message-ID"] = make_msgid(domain=sender.rsplit("@", 1)[-1].strip("> ") or None)

    message.set_content("Open this message in an HTML-capable mail client to view the receipt.")
    message.add_alternative(html, subtype="html")

    for att in attachments:
        maintype, _, subtype = att.content_type.partition("/")
        message.add_attachment(
            att.content,
            maintype=maintype or "application",
            subtype=subtype or "octet-stream",
            filename=att.filename,
        )
    return message


@dataclass
class SmtpMailer:
    host: str
    port: int
    username: str | None
    password: str | None
    use_tls: bool = True
    timeout: int = field(default=10)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.email_user,
            password=settings.email_pass,
            use_tls=settings.smtp_use_tls,
        )

    @property
    def sender(self) -> str:
        return f'"{SENDER_NAME}" <{self.username}>'

    def send(
        self,
        *,
        to: Sequence[str],
        subject: str,
        html: str,
        attachments: Sequence[Attachment] = (),
    ) -> str:
        """Send one message; returns its Message-ID."""
        if not self.username or not self.password:
            raise MailerError("Email credentials are not configured")

        message = build_message(sender=self.sender, to=to, subject=subject, html=html, attachments=attachments)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
                client.ehlo()
                if self.use_tls:
                    client.starttls(context=create_default_context())
                    client.ehlo()
                client.login(self.username, self.password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("sending mail to %s failed: %s", ", ".join(to), exc)
            raise MailerError(str(exc)) from exc

        logger.info("mail sent to %s (%s)", ", ".join(to), message["Message-ID"])
        return str(message["Message-ID"])
