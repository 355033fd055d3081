from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, validator


class DiscountType(str, Enum):
    PERCENT = "percent"
    FLAT = "flat"
    FIXED = "fixed"


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands back naive UTC datetimes; store and compare the same way"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PromoApplyRequest(BaseModel):
    # validated by the engine, not here
    code: Any = None
    amount: Any = None


class PromoQuote(BaseModel):
    code: str
    discount_type: str = Field(..., alias="discountType")
    discount_amount: float = Field(..., alias="discountAmount")
    final_amount: float = Field(..., alias="finalAmount")


class PromoCodeCreate(BaseModel):
    code: str = Field(..., min_length=2, max_length=40)
    discount_type: DiscountType = Field(..., alias="discountType")
    amount: float = Field(..., ge=0)
    active: bool = True
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    min_amount: Optional[float] = Field(None, alias="minAmount", ge=0)
    uses_limit: Optional[int] = Field(None, alias="usesLimit", ge=1)

    @validator("code")
    def normalize_code(cls, v):
        v = v.strip().upper()
        if len(v) < 2:
            raise ValueError("Code must be at least 2 characters")
        return v

    @validator("expires_at", pre=True)
    def empty_expiry_is_none(cls, v):
        if v == "" or v is None:
            return None
        return v

    @validator("expires_at")
    def expiry_to_utc(cls, v):
        return to_naive_utc(v)

    @validator("amount")
    def percent_within_range(cls, v, values):
        if values.get("discount_type") == DiscountType.PERCENT and v > 100:
            raise ValueError("Percent discount cannot exceed 100")
        return v
