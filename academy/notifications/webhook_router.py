"""
SendGrid event webhook
Records the latest delivery event (delivered, bounce, open, ...) on the
registration whose verification email it refers to
"""

import hmac
import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends

from academy.core.database import AppContext, get_ctx
from academy.core.errors import Forbidden

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])


def base_message_id(sg_message_id: Optional[str]) -> Optional[str]:
    """SendGrid event ids are `<X-Message-Id>.<filter suffix>`"""
    if not sg_message_id:
        return None
    return str(sg_message_id).split(".")[0] or None


def event_time(timestamp) -> datetime:
    """Event unix time, or now when missing or out of range"""
    if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
        try:
            return datetime.utcfromtimestamp(timestamp)
        except (OverflowError, OSError, ValueError):
            logger.warning("[MAIL] Ignoring out-of-range event timestamp %r", timestamp)
    return datetime.utcnow()


@router.post("/api/webhooks/sendgrid")
async def sendgrid_events(
    events: List[Any] = Body(...),
    token: Optional[str] = None,
    ctx: AppContext = Depends(get_ctx),
):
    expected = ctx.config.SENDGRID_WEBHOOK_TOKEN
    if expected and not hmac.compare_digest(token or "", expected):
        raise Forbidden("Invalid webhook token")

    matched = 0
    for event in events:
        if not isinstance(event, dict):
            continue
        message_id = base_message_id(event.get("sg_message_id"))
        if not message_id:
            continue
        last_event = {
            "event": event.get("event"),
            "at": event_time(event.get("timestamp")),
            "reason": event.get("reason"),
        }
        result = await ctx.db.registrations.update_one(
            {"paymentProof.email.messageId": message_id},
            {"$set": {"paymentProof.email.lastEvent": last_event}},
        )
        matched += result.matched_count

    logger.info("[MAIL] Webhook processed %d events, %d matched", len(events), matched)
    return {"ok": True, "received": len(events), "matched": matched}
