"""
Admin authentication
Issues and verifies admin JWTs; the credential comes from the Authorization
header or the session cookie set at login
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from academy.core.config import Config
from academy.core.database import AppContext, get_ctx
from academy.core.errors import Forbidden, InvalidToken, Unauthenticated

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


# ==================== PASSWORDS ====================

def hash_password(plain: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


async def authenticate_user(db: AsyncIOMotorDatabase, email: str, password: str) -> Optional[dict]:
    """Return the user document when email/password match"""
    user = await db.users.find_one({"email": email.strip().lower()})
    if not user:
        return None
    valid = await asyncio.to_thread(check_password, password, user.get("passwordHash"))
    return user if valid else None


# ==================== TOKENS ====================

def create_access_token(config: Config, user_id: str, email: str, role: str, name: Optional[str] = None) -> str:
    now = datetime.utcnow()
    payload = {
        "jti": str(uuid.uuid4()),
        "iss": config.JWT_ISSUER,
        "aud": config.JWT_AUDIENCE,
        "sub": user_id,
        "email": email,
        "name": name,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=config.JWT_EXPIRE_HOURS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(ctx: AppContext, token: str) -> dict:
    """Signature, expiry, issuer, audience and revocation checks"""
    config = ctx.config
    try:
        payload = jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            audience=config.JWT_AUDIENCE,
            issuer=config.JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Session expired")
    except jwt.InvalidTokenError:
        raise InvalidToken("Invalid token")

    jti = payload.get("jti")
    if jti and ctx.revocations.is_revoked(jti):
        raise InvalidToken("Session revoked")
    return payload


def revoke_token(ctx: AppContext, token: str) -> None:
    """Blacklist a token until its natural expiry (logout)"""
    try:
        payload = decode_access_token(ctx, token)
    except InvalidToken:
        return
    jti, exp = payload.get("jti"), payload.get("exp")
    if jti and exp:
        ctx.revocations.revoke(jti, float(exp))


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return request.cookies.get(cookie_name) or None


def actor_identity(principal: dict) -> str:
    """Who to record in verifiedBy"""
    return principal.get("email") or principal.get("name") or principal.get("sub") or "admin"


# ==================== DEPENDENCIES ====================

async def get_current_principal(request: Request, ctx: AppContext = Depends(get_ctx)) -> dict:
    token = extract_token(request, ctx.config.COOKIE_NAME)
    if not token:
        raise Unauthenticated("Authentication required")
    return decode_access_token(ctx, token)


async def get_current_admin(principal: dict = Depends(get_current_principal)) -> dict:
    """
    FastAPI dependency to protect admin routes

    Usage:
        @router.get("/admin/registrations")
        async def registrations(admin: dict = Depends(get_current_admin)):
            ...
    """
    if principal.get("role") != ADMIN_ROLE:
        raise Forbidden("Admin access required")
    return principal
