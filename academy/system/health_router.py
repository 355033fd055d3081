import asyncio
import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from academy.core.database import AppContext, get_ctx

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

PING_TIMEOUT_SECONDS = 5.0


async def _ping(db) -> dict:
    start = datetime.utcnow()
    try:
        await asyncio.wait_for(db.command("ping"), timeout=PING_TIMEOUT_SECONDS)
    except Exception as e:
        logger.warning("[HEALTH] Ping failed: %s", e)
        return {"status": "DOWN", "error": str(e) or e.__class__.__name__}
    return {"status": "UP", "latency_ms": (datetime.utcnow() - start).total_seconds() * 1000}


@router.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.utcnow()}


@router.get("/health/db")
async def health_db(ctx: AppContext = Depends(get_ctx)):
    primary = await _ping(ctx.db)

    if not ctx.remote_configured:
        remote = {"status": "not_configured"}
    else:
        try:
            remote = await _ping(await ctx.get_remote_db())
        except Exception as e:
            logger.warning("[HEALTH] Remote store unavailable: %s", e)
            remote = {"status": "DOWN", "error": str(e) or e.__class__.__name__}

    healthy = primary["status"] == "UP" and remote["status"] != "DOWN"
    return {"status": "ok" if healthy else "degraded", "primary": primary, "remote": remote}
