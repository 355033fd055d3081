"""
Transactional email through SendGrid
Sends never raise: every outcome comes back as an EmailResult
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

logger = logging.getLogger(__name__)


class EmailResult(BaseModel):
    ok: bool
    error: Optional[str] = None
    message_id: Optional[str] = None
    status_code: Optional[int] = None

    def to_meta(self, sent_at: Optional[datetime] = None) -> dict:
        """Reduced view persisted on the registration"""
        return {
            "ok": self.ok,
            "error": None if self.ok else (self.error or "unknown_error"),
            "sentAt": sent_at or datetime.utcnow(),
            "messageId": self.message_id,
            "lastEvent": None,
        }


class SendGridMailer:
    def __init__(self, api_key: Optional[str], sender: str):
        self.api_key = api_key
        self.sender = sender
        if not api_key:
            logger.warning("[MAIL] SENDGRID_API_KEY not set - emails will not be sent")

    async def send(self, to: str, subject: str, text: str, html: str) -> EmailResult:
        if not self.api_key:
            return EmailResult(ok=False, error="no_sendgrid_api_key")
        if not to:
            return EmailResult(ok=False, error="missing_to_address")

        message = Mail(
            from_email=self.sender,
            to_emails=to,
            subject=subject,
            plain_text_content=text,
            html_content=html,
        )
        try:
            response = await asyncio.to_thread(SendGridAPIClient(self.api_key).send, message)
        except Exception as e:
            body = getattr(e, "body", None)
            logger.error("[MAIL] SendGrid send to %s failed: %s %s", to, e, body or "")
            return EmailResult(ok=False, error=str(e) or e.__class__.__name__)

        message_id = _header(response.headers, "X-Message-Id")
        logger.info("[MAIL] SendGrid accepted mail to %s (status %s)", to, response.status_code)
        return EmailResult(ok=True, message_id=message_id, status_code=response.status_code)


def _header(headers: Any, name: str) -> Optional[str]:
    if not headers:
        return None
    value = headers.get(name)
    if value is None and isinstance(headers, dict):
        value = headers.get(name.lower())
    return value
