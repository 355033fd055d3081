"""
Public contact form
Forwards a visitor's message to the site inbox (CONTACT_TO)
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, validator

from academy.core.database import AppContext, get_ctx
from academy.core.errors import DeliveryFailed
from academy.notifications.templates import contact_email
from academy.registrations.models import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact"])


class ContactRequest(BaseModel):
    name: str
    email: str
    message: str

    @validator("name", "message")
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @validator("email")
    def valid_email(cls, v):
        return normalize_email(v)


@router.post("/api/contact")
async def contact(data: ContactRequest, ctx: AppContext = Depends(get_ctx)):
    subject, text, html = contact_email(data.name, data.email, data.message)
    try:
        result = await ctx.mailer.send(ctx.config.CONTACT_TO, subject, text, html)
    except Exception as e:
        logger.exception("[CONTACT] Delivery of message from %s failed", data.email)
        raise DeliveryFailed("Email delivery failed", details=str(e) or e.__class__.__name__)

    if result.ok:
        logger.info("[CONTACT] Message from %s forwarded", data.email)
        return {"ok": True, "via": "sendgrid"}
    if result.error == "no_sendgrid_api_key":
        # no provider configured: keep the message in the log
        logger.warning("[CONTACT] No email provider, message from %s <%s>: %s", data.name, data.email, data.message)
        return {"ok": True, "via": "log-only"}
    logger.warning("[CONTACT] Message from %s not sent: %s", data.email, result.error)
    raise DeliveryFailed("Email delivery failed", details=result.error)
