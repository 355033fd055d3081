"""
Promo engine
Looks up a promo code and prices a base amount against it. Read-only.
"""

import logging
import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from academy.core.errors import AppError, BadRequest, Conflict, Gone, NotFound, ValidationFailed
from academy.promos.models import DiscountType, PromoQuote, to_naive_utc

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")


class PromoError(AppError):
    """Raised with code one of: validation_error, invalid_code, expired, min_amount, no_uses_left"""


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("boolean is not an amount")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("amount must be finite")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValueError(f"not a number: {value!r}")
    if not result.is_finite():
        raise ValueError("amount must be finite")
    return result


def compute_discount(discount_type: str, value: Decimal, base: Decimal) -> Decimal:
    """
    percent -> base * value / 100, flat/fixed (and unknown types) -> value.
    The discount never exceeds the base so final = base - discount holds.
    """
    if discount_type == DiscountType.PERCENT.value:
        discount = round_money(base * value / 100)
    else:
        discount = round_money(value)
    return min(discount, base)


def is_expired(promo: dict, now: Optional[datetime] = None) -> bool:
    expires_at = to_naive_utc(promo.get("expiresAt"))
    if expires_at is None:
        return False
    return expires_at < (now or datetime.utcnow())


async def find_promo(db: AsyncIOMotorDatabase, code: str) -> Optional[dict]:
    """Newest promo document for an upper-cased code"""
    cursor = db.promocodes.find({"code": code.strip().upper()}).sort("createdAt", -1).limit(1)
    docs = await cursor.to_list(length=1)
    return docs[0] if docs else None


async def apply_promo(db: AsyncIOMotorDatabase, code: Optional[str], base_amount: Any = None) -> PromoQuote:
    """
    Price base_amount against an active, unexpired promo code.

    Raises PromoError with the classification the caller should surface.
    """
    code = str(code or "").strip()
    if not code:
        raise PromoError("Promo code is required", code="validation_error", status_code=400,
                         details={"field": "code"})

    try:
        base = to_decimal(0 if base_amount is None else base_amount)
    except ValueError as e:
        raise PromoError(f"Invalid amount provided: {e}", code="validation_error", status_code=400,
                         details={"field": "amount"})
    if base < ZERO:
        raise PromoError("Amount must be >= 0", code="validation_error", status_code=400,
                         details={"field": "amount"})

    promo = await find_promo(db, code)
    if not promo:
        raise PromoError("Promo code not found", code="invalid_code", status_code=NotFound.status_code)

    # expiry wins over the active flag so an expired code always reports as expired
    if is_expired(promo):
        raise PromoError("Promo code expired", code="expired", status_code=Gone.status_code)
    if not promo.get("active", False):
        raise PromoError("Promo code not found", code="invalid_code", status_code=NotFound.status_code)

    min_amount = promo.get("minAmount")
    if min_amount is not None and base < to_decimal(min_amount):
        raise PromoError(f"Minimum amount is {min_amount}", code="min_amount", status_code=BadRequest.status_code)

    uses_limit = promo.get("usesLimit")
    if uses_limit and promo.get("usesCount", 0) >= uses_limit:
        raise PromoError("Promo uses exhausted", code="no_uses_left", status_code=Conflict.status_code)

    discount_type = str(promo.get("discountType") or "").lower()
    try:
        value = to_decimal(promo.get("amount") or 0)
    except ValueError:
        logger.error("[PROMO] Promo %s has a non-numeric amount %r", promo.get("code"), promo.get("amount"))
        raise PromoError("Promo code is misconfigured", code="validation_error",
                         status_code=ValidationFailed.status_code)

    discount = compute_discount(discount_type, value, base)
    final = max(ZERO, round_money(base - discount))

    return PromoQuote(**{
        "code": promo.get("code") or code.upper(),
        "discountType": discount_type,
        "discountAmount": float(discount),
        "finalAmount": float(final),
    })


async def record_promo_use(db: AsyncIOMotorDatabase, code: str) -> None:
    await db.promocodes.update_one({"code": code}, {"$inc": {"usesCount": 1}})
