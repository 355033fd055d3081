import logging
from datetime import datetime

from bson import ObjectId

from academy.core.database import AppContext
from academy.core.errors import ValidationFailed
from academy.courses.database import find_course
from academy.promos.engine import apply_promo, record_promo_use, round_money, to_decimal
from academy.registrations.database import insert_registration
from academy.registrations.models import AdminRegistrationCreate, RegistrationCreate, normalize_email
from academy.registrations.workflow import initial_status

logger = logging.getLogger(__name__)


async def submit_registration(ctx: AppContext, data: RegistrationCreate) -> dict:
    """
    Store a public registration and return it (with `_id`).

    The price comes from the course when it resolves, else from the body.
    A promo code is re-applied here; the client's discounted amount is never trusted.
    """
    db = ctx.db
    course = await find_course(db, data.course)
    try:
        if course is not None and course.get("price") is not None:
            base = round_money(to_decimal(course["price"]))
        else:
            base = round_money(to_decimal(data.amount or 0))
    except ValueError as e:
        raise ValidationFailed(f"Invalid amount: {e}", details={"field": "amount"})

    registration = {
        "name": data.name,
        "email": data.email,
        "phone": data.phone,
        "course": course.get("title", data.course) if course else data.course,
        "courseId": course["_id"] if course else None,
        "notes": data.notes,
        "baseAmount": float(base),
        "amount": float(base),
    }

    if data.promo_code:
        quote = await apply_promo(db, data.promo_code, base)
        registration.update({
            "promoCode": quote.code,
            "discountAmount": quote.discount_amount,
            "amount": quote.final_amount,
        })

    proof = data.payment_proof.dict(by_alias=True) if data.payment_proof else {}
    proof.update({
        "submittedAt": datetime.utcnow(),
        "verifiedAt": None,
        "verifiedBy": None,
        "verificationNotes": None,
    })
    registration["paid"] = registration["amount"] == 0
    registration["status"] = initial_status(proof, registration["paid"])
    registration["paymentProof"] = proof

    registration["_id"] = await insert_registration(db, registration)
    logger.info("[REGISTER] %s registered for %s (%s)", data.email, registration["course"], registration["status"])

    if data.promo_code:
        await record_promo_use(db, registration["promoCode"])
    return registration


async def create_admin_registration(ctx: AppContext, data: AdminRegistrationCreate, actor: str) -> dict:
    """Manual registration entered by an admin; carries no payment proof"""
    if not (data.name or "").strip() or not (data.email or "").strip() or not (data.course or "").strip():
        raise ValidationFailed("name, email and course are required")
    try:
        email = normalize_email(data.email)
    except ValueError as e:
        raise ValidationFailed(str(e), details={"field": "email"})

    course_id = ObjectId(data.course_id) if data.course_id and ObjectId.is_valid(data.course_id) else None
    registration = {
        "name": data.name.strip(),
        "email": email,
        "phone": data.phone,
        "course": data.course.strip(),
        "courseId": course_id,
        "status": data.status.value,
        "paid": data.paid,
        "amount": data.amount,
        "notes": data.notes,
        "createdBy": actor,
    }
    registration["_id"] = await insert_registration(ctx.db, registration)
    logger.info("[REGISTER] %s added %s manually", actor, email)
    return registration
