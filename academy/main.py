import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academy.admin.auth_router import router as auth_router
from academy.admin.registrations_router import router as admin_registrations_router
from academy.core.config import get_config
from academy.core.database import AppContext
from academy.core.errors import register_error_handlers
from academy.core.logger import setup_logging
from academy.courses.course_router import router as course_router
from academy.notifications.contact_router import router as contact_router
from academy.notifications.webhook_router import router as webhook_router
from academy.promos.promo_router import router as promo_router
from academy.registrations.registration_router import router as registration_router
from academy.system.health_router import router as health_router

logger = logging.getLogger(__name__)


def create_app(ctx: Optional[AppContext] = None) -> FastAPI:
    """Build the API; a prepared AppContext (tests) skips reading the environment"""
    app = FastAPI(title="RhinoGeeks Academy API")
    app.state.ctx = ctx

    cors_origins = ctx.config.CORS_ORIGINS if ctx is not None else get_cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        if app.state.ctx is None:
            config = get_config()
            setup_logging(config.LOG_LEVEL)
            app.state.ctx = AppContext.from_config(config)
        else:
            setup_logging(app.state.ctx.config.LOG_LEVEL)
        await app.state.ctx.create_indexes()
        logger.info("Academy API started")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.ctx is not None:
            app.state.ctx.close()

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(registration_router)
    app.include_router(admin_registrations_router)
    app.include_router(promo_router)
    app.include_router(course_router)
    app.include_router(webhook_router)
    app.include_router(contact_router)
    # ============================================================

    return app


def get_cors_origins():
    # importing the module must not require MONGODB_URI/JWT_SECRET
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


app = create_app()


if __name__ == "__main__":
    uvicorn.run("academy.main:app", host="0.0.0.0", port=8000)
