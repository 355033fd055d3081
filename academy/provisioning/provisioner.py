"""
Remote account provisioner
Creates a learner account in the remote store the first time a registration
for that email is verified. Email (lower-cased, trimmed) is the idempotency key.
"""

import asyncio
import logging
import secrets
from typing import Optional

from pymongo.errors import DuplicateKeyError

from academy.admin.auth import hash_password
from academy.core.database import AppContext
from academy.notifications.mailer import EmailResult
from academy.notifications.templates import welcome_email
from academy.provisioning.models import ProvisionResult, RemoteUser, public_user

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10


def normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


def deterministic_password(email: str, name: Optional[str], suffix: str) -> str:
    """
    First name (or email local-part) + suffix.

    Guessable from public data. Only used when PASSWORD_STRATEGY=deterministic.
    """
    tokens = (name or "").strip().split()
    first = tokens[0] if tokens else normalize_email(email).split("@")[0]
    return f"{first}{suffix}"


def random_password() -> str:
    return secrets.token_urlsafe(9)


def temporary_password(ctx: AppContext, email: str, name: Optional[str]) -> str:
    if ctx.config.PASSWORD_STRATEGY == "deterministic":
        return deterministic_password(email, name, ctx.config.PASSWORD_SUFFIX)
    return random_password()


async def provision_student(
    ctx: AppContext,
    email: str,
    name: Optional[str] = None,
    source_info: Optional[dict] = None,
) -> ProvisionResult:
    """
    Create the learner account if absent. Never raises.

    Returns created=False/existed=True (no mutation, no email) when the
    account already exists, and created=False with an error on failure.
    """
    normalized = normalize_email(email)
    try:
        if not normalized:
            raise ValueError("email is required")

        remote_db = await ctx.get_remote_db()
        existing = await remote_db.users.find_one({"email": normalized})
        if existing:
            logger.info("[PROVISION] Learner %s already exists", normalized)
            return ProvisionResult(created=False, existed=True, user=public_user(existing))

        plain = temporary_password(ctx, normalized, name)
        hashed = await asyncio.to_thread(hash_password, plain, BCRYPT_ROUNDS)

        user = RemoteUser(
            name=(name or "").strip(),
            email=normalized,
            password=hashed,
            metadata={
                "createdFrom": "registration_verification",
                "sourceInfo": source_info or {},
                "passwordStrategy": ctx.config.PASSWORD_STRATEGY,
                "mustChangePassword": True,
            },
        )
        doc = user.dict()
        try:
            result = await remote_db.users.insert_one(doc)
        except DuplicateKeyError:
            # lost a race with a concurrent verify for the same email
            existing = await remote_db.users.find_one({"email": normalized})
            logger.info("[PROVISION] Learner %s created concurrently", normalized)
            return ProvisionResult(created=False, existed=True, user=public_user(existing))
        doc["_id"] = result.inserted_id
        logger.info("[PROVISION] Created learner %s", normalized)
    except Exception as e:
        logger.exception("[PROVISION] Failed to provision %s", normalized or email)
        return ProvisionResult(created=False, error=str(e) or e.__class__.__name__)

    email_result = await _send_welcome(ctx, normalized, plain, name)
    return ProvisionResult(
        created=True,
        user=public_user(doc),
        password_plain=plain,
        email_result=email_result,
    )


async def _send_welcome(ctx: AppContext, to: str, plain: str, name: Optional[str]) -> EmailResult:
    subject, text, html = welcome_email(to, plain, name)
    try:
        return await ctx.mailer.send(to, subject, text, html)
    except Exception as e:
        logger.exception("[PROVISION] Welcome email to %s failed", to)
        return EmailResult(ok=False, error=str(e) or e.__class__.__name__)
