import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from academy.admin.auth import (
    authenticate_user, create_access_token, decode_access_token, extract_token, revoke_token,
)
from academy.core.database import AppContext, get_ctx
from academy.core.errors import AppError, Unauthenticated

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Admin auth"])


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


def _public_principal(payload: dict) -> dict:
    return {
        "id": payload.get("sub"),
        "email": payload.get("email"),
        "name": payload.get("name"),
        "role": payload.get("role"),
    }


@router.post("/login")
async def login(body: LoginRequest, response: Response, ctx: AppContext = Depends(get_ctx)):
    user = await authenticate_user(ctx.db, body.email, body.password)
    if not user:
        logger.warning("[AUTH] Failed login for %s", body.email.strip().lower())
        raise Unauthenticated("Invalid email or password", code="invalid_credentials")

    config = ctx.config
    token = create_access_token(
        config,
        str(user["_id"]),
        user["email"],
        user.get("role", "user"),
        user.get("name"),
    )
    response.set_cookie(
        config.COOKIE_NAME,
        token,
        max_age=config.JWT_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("[AUTH] %s logged in", user["email"])
    return {
        "ok": True,
        "token": token,
        "user": {
            "id": str(user["_id"]),
            "email": user["email"],
            "name": user.get("name"),
            "role": user.get("role", "user"),
        },
    }


@router.get("/me")
async def me(request: Request, ctx: AppContext = Depends(get_ctx)):
    token = extract_token(request, ctx.config.COOKIE_NAME)
    if not token:
        return {"user": None}
    try:
        payload = decode_access_token(ctx, token)
    except AppError:
        return {"user": None}
    return {"user": _public_principal(payload)}


@router.post("/logout")
async def logout(request: Request, response: Response, ctx: AppContext = Depends(get_ctx)):
    token = extract_token(request, ctx.config.COOKIE_NAME)
    if token:
        revoke_token(ctx, token)
    response.delete_cookie(ctx.config.COOKIE_NAME, path="/")
    return {"ok": True}
