import math
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, validator

EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    AWAITING_VERIFICATION = "awaiting_verification"
    VERIFIED = "verified"
    REJECTED = "rejected"


class VerificationAction(str, Enum):
    VERIFY = "verify"
    REJECT = "reject"


def normalize_email(v: str) -> str:
    v = (v or "").strip().lower()
    if not EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email address")
    return v


def finite_amount(v):
    if v is not None and not math.isfinite(v):
        raise ValueError("amount must be a finite number")
    return v


class PaymentProofIn(BaseModel):
    method: Optional[str] = Field(None, max_length=40)
    txn_id: Optional[str] = Field(None, alias="txnId", max_length=100)
    screenshot: Optional[str] = Field(None, max_length=2048)
    notes: Optional[str] = Field(None, max_length=2000)

    @validator("txn_id", "screenshot", "method")
    def blank_is_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None


class RegistrationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str
    phone: Optional[str] = Field(None, max_length=30)
    course: str = Field(..., min_length=1)
    promo_code: Optional[str] = Field(None, alias="promoCode")
    amount: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)
    payment_proof: Optional[PaymentProofIn] = Field(None, alias="paymentProof")

    @validator("name", "course")
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @validator("email")
    def valid_email(cls, v):
        return normalize_email(v)

    @validator("promo_code")
    def blank_promo_is_none(cls, v):
        if v is None:
            return None
        return v.strip().upper() or None

    @validator("amount")
    def amount_is_finite(cls, v):
        return finite_amount(v)


class AdminRegistrationCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    course: Optional[str] = None
    course_id: Optional[str] = Field(None, alias="courseId")
    status: RegistrationStatus = RegistrationStatus.PENDING
    paid: bool = False
    amount: float = Field(0, ge=0)
    notes: Optional[str] = None

    @validator("amount")
    def amount_is_finite(cls, v):
        return finite_amount(v)


class VerificationRequest(BaseModel):
    action: Optional[str] = None
    verification_notes: Optional[str] = Field(None, alias="verificationNotes")
    paid: Optional[bool] = None
