"""
POST /send-email: order receipts with optional attachments.

Answers in the ``{"data": ...}`` / ``{"error": ...}`` envelope the web
client expects, not the ``detail`` shape of the rest of the API.
"""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool

from backend.app.api.deps import get_mailer
from backend.services.errors import InvalidInput
from backend.services.mailer import (
    DEFAULT_HTML,
    DEFAULT_SUBJECT,
    MailerError,
    SmtpMailer,
    decode_attachment,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class AttachmentIn(BaseModel):
    filename: str = Field(min_length=1)
    content: str
    encoding: str = "base64"
    content_type: str | None = None


class EmailRequest(BaseModel):
    to: str | list[str]
    subject: str | None = None
    html: str | None = None
    attachments: list[AttachmentIn] = Field(default_factory=list)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/send-email")
async def send_email(request: Request, mailer: SmtpMailer = Depends(get_mailer)):
    try:
        body = json.loads(await request.body() or b"null")
        payload = EmailRequest.model_validate(body)
    except json.JSONDecodeError:
        return _error(400, "Request body must be JSON")
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "body"
        return _error(400, f"{field}: {first['msg']}")

    try:
        attachments = [
            decode_attachment(a.filename, a.content, a.encoding, a.content_type) for a in payload.attachments
        ]
    except InvalidInput as exc:
        return _error(400, exc.message)

    recipients = [r.strip() for r in (payload.to if isinstance(payload.to, list) else [payload.to]) if r.strip()]
    if not recipients:
        return _error(400, "to: recipient is required")

    try:
        message_id = await run_in_threadpool(
            mailer.send,
            to=recipients,
            subject=payload.subject or DEFAULT_SUBJECT,
            html=payload.html or DEFAULT_HTML,
            attachments=attachments,
        )
    except MailerError as exc:
        logger.error("send-email failed: %s", exc)
        return _error(500, str(exc))

    return {"data": {"message_id": message_id}}


@router.api_route("/send-email", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def send_email_wrong_method():
    return _error(405, "Method not allowed")
