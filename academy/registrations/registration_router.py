from fastapi import APIRouter, Depends

from academy.core.database import AppContext, get_ctx, parse_object_id, serialize_mongo
from academy.core.errors import NotFound
from academy.registrations.database import get_registration
from academy.registrations.models import RegistrationCreate
from academy.registrations.service import submit_registration

router = APIRouter(tags=["Registrations"])

# fields a registrant may see when polling their own registration
PUBLIC_FIELDS = ("_id", "name", "course", "status", "paid", "amount", "baseAmount",
                 "discountAmount", "promoCode", "createdAt", "updatedAt")


@router.post("/api/register", status_code=201)
async def register(data: RegistrationCreate, ctx: AppContext = Depends(get_ctx)):
    registration = await submit_registration(ctx, data)
    return {
        "ok": True,
        "id": str(registration["_id"]),
        "status": registration["status"],
        "amount": registration["amount"],
    }


@router.get("/api/register/{registration_id}")
async def registration_status(registration_id: str, ctx: AppContext = Depends(get_ctx)):
    registration = await get_registration(ctx.db, parse_object_id(registration_id))
    if not registration:
        raise NotFound("Registration not found")
    visible = {key: registration[key] for key in PUBLIC_FIELDS if key in registration}
    return {"ok": True, "registration": serialize_mongo(visible)}
