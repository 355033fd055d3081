"""
Promo code endpoints
Public quote endpoint plus admin management
"""

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from academy.admin.auth import get_current_admin
from academy.core.database import get_db, parse_object_id, serialize_many, serialize_mongo
from academy.core.errors import NotFound
from academy.promos.database import create_promo, delete_promo, get_promo, list_promos
from academy.promos.engine import apply_promo
from academy.promos.models import PromoApplyRequest, PromoCodeCreate

router = APIRouter(tags=["Promo codes"])


@router.post("/api/promocodes/apply")
async def apply_promo_endpoint(body: PromoApplyRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    quote = await apply_promo(db, body.code, body.amount)
    return {"ok": True, **quote.dict(by_alias=True)}


@router.get("/api/admin/promocodes")
async def list_promos_endpoint(
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return serialize_many(await list_promos(db))


@router.post("/api/admin/promocodes", status_code=201)
async def create_promo_endpoint(
    data: PromoCodeCreate,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    promo = await create_promo(db, data, created_by=admin.get("sub"))
    return serialize_mongo(promo)


@router.get("/api/admin/promocodes/{promo_id}")
async def get_promo_endpoint(
    promo_id: str,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    promo = await get_promo(db, parse_object_id(promo_id))
    if not promo:
        raise NotFound("Promocode not found")
    return serialize_mongo(promo)


@router.delete("/api/admin/promocodes/{promo_id}")
async def delete_promo_endpoint(
    promo_id: str,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    oid = parse_object_id(promo_id)
    if not await delete_promo(db, oid):
        raise NotFound("Promocode not found or already deleted")
    return {"success": True, "message": "Promocode deleted successfully", "deletedId": promo_id}
