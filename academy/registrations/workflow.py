"""
Registration verification workflow
Moves a registration to verified/rejected, notifies the registrant and, on
verification, provisions the learner account.

The status write, the email and the provisioning are three independent
writes. A failed email or provisioning never undoes the status change; the
outcome of each side effect is recorded on the registration instead.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from academy.core.database import AppContext, parse_object_id
from academy.core.errors import NotFound, ValidationFailed
from academy.notifications.mailer import EmailResult
from academy.notifications.templates import verification_email
from academy.provisioning.provisioner import provision_student
from academy.registrations.database import get_registration, set_fields
from academy.registrations.models import RegistrationStatus, VerificationAction

logger = logging.getLogger(__name__)


class TransitionOutcome(BaseModel):
    registration: dict
    email: dict
    create_user: Optional[dict] = None
    warnings: List[str] = []


def initial_status(payment_proof: Optional[dict], paid: bool = False) -> str:
    """Status a new registration starts in"""
    proof = payment_proof or {}
    if proof.get("txnId") and proof.get("screenshot"):
        return RegistrationStatus.AWAITING_VERIFICATION.value
    return RegistrationStatus.PENDING.value


def build_transition_update(
    action: VerificationAction,
    actor: str,
    notes: Optional[str] = None,
    paid_override: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> dict:
    now = now or datetime.utcnow()
    update = {
        "paymentProof.verifiedAt": now,
        "paymentProof.verifiedBy": actor,
        "updatedAt": now,
    }
    if action == VerificationAction.VERIFY:
        update["status"] = RegistrationStatus.VERIFIED.value
        update["paid"] = paid_override if isinstance(paid_override, bool) else True
        if notes:
            update["paymentProof.verificationNotes"] = notes
    else:
        update["status"] = RegistrationStatus.REJECTED.value
        update["paid"] = False
        update["paymentProof.verificationNotes"] = notes or "Rejected by admin"
    return update


def parse_action(action) -> VerificationAction:
    try:
        return VerificationAction(str(action or "").strip().lower())
    except ValueError:
        raise ValidationFailed("action must be 'verify' or 'reject'", code="invalid_action")


def registration_warnings(registration: dict) -> List[str]:
    """Side-effect failures recorded on a registration, for the admin UI"""
    proof = registration.get("paymentProof") or {}
    warnings = []

    email = proof.get("email")
    if isinstance(email, dict) and email.get("ok") is False:
        warnings.append("email_failed")

    remote = proof.get("createdRemoteUser")
    if isinstance(remote, dict):
        result = remote.get("result") or {}
        if remote.get("error") or result.get("error"):
            warnings.append("provisioning_failed")
    return warnings


async def transition_registration(
    ctx: AppContext,
    registration_id: str,
    action,
    actor: str,
    notes: Optional[str] = None,
    paid_override: Optional[bool] = None,
) -> TransitionOutcome:
    """
    Apply an admin decision to a registration.

    Raises invalid_action (422), invalid_id (400) or not_found (404) before any
    mutation. After the status write, email and provisioning failures are
    captured in the outcome and never raised.
    """
    verb = parse_action(action)
    oid = parse_object_id(registration_id)
    notes = (notes or "").strip() or None
    db = ctx.db

    registration = await set_fields(db, oid, build_transition_update(verb, actor, notes, paid_override))
    if registration is None:
        raise NotFound("Registration not found")
    logger.info("[VERIFY] Registration %s %s by %s", oid, registration["status"], actor)

    email_result = await _notify_registrant(ctx, registration, verb, actor, notes)
    email_meta = email_result.to_meta()
    try:
        await set_fields(db, oid, {"paymentProof.email": email_meta})
    except Exception:
        logger.exception("[VERIFY] Could not record email result on %s", oid)

    create_user = None
    if verb == VerificationAction.VERIFY and registration.get("email"):
        create_user = await _provision(ctx, oid, registration)

    final = await get_registration(db, oid) or registration
    return TransitionOutcome(
        registration=final,
        email=email_meta,
        create_user=create_user,
        warnings=registration_warnings(final),
    )


async def _notify_registrant(
    ctx: AppContext,
    registration: dict,
    verb: VerificationAction,
    actor: str,
    notes: Optional[str],
) -> EmailResult:
    to = registration.get("email")
    if not to:
        return EmailResult(ok=False, error="missing_to_address")

    decision = "verified" if verb == VerificationAction.VERIFY else "rejected"
    subject, text, html = verification_email(registration, decision, actor, notes)
    try:
        result = await ctx.mailer.send(to, subject, text, html)
    except Exception as e:
        logger.exception("[VERIFY] Email to %s failed", to)
        return EmailResult(ok=False, error=str(e) or e.__class__.__name__)
    if not result.ok:
        logger.warning("[VERIFY] Email to %s not sent: %s", to, result.error)
    return result


async def _provision(ctx: AppContext, oid, registration: dict) -> dict:
    try:
        result = await provision_student(
            ctx,
            registration["email"],
            registration.get("name"),
            {"registrationId": str(oid)},
        )
        record = {"createdAt": datetime.utcnow(), "result": result.audit_view()}
        if result.error:
            record["error"] = result.error
    except Exception as e:
        logger.exception("[VERIFY] Provisioning crashed for %s", oid)
        record = {"createdAt": datetime.utcnow(), "error": str(e) or e.__class__.__name__}

    try:
        await set_fields(ctx.db, oid, {"paymentProof.createdRemoteUser": record})
    except Exception:
        logger.exception("[VERIFY] Could not record provisioning result on %s", oid)
    return record
