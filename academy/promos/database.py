from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from academy.core.errors import Conflict
from academy.promos.models import PromoCodeCreate


async def create_promo(db: AsyncIOMotorDatabase, data: PromoCodeCreate, created_by: Optional[str] = None) -> dict:
    """Insert a promo code; codes are unique (409 on duplicates)"""
    now = datetime.utcnow()
    promo = {
        "code": data.code,
        "discountType": data.discount_type.value,
        "amount": data.amount,
        "active": data.active,
        "expiresAt": data.expires_at,
        "minAmount": data.min_amount,
        "usesLimit": data.uses_limit,
        "usesCount": 0,
        "createdBy": created_by,
        "createdAt": now,
        "updatedAt": now,
    }
    if await db.promocodes.find_one({"code": data.code}):
        raise Conflict("Promo code already exists")
    try:
        result = await db.promocodes.insert_one(promo)
    except DuplicateKeyError:
        raise Conflict("Promo code already exists")
    promo["_id"] = result.inserted_id
    return promo


async def list_promos(db: AsyncIOMotorDatabase, limit: int = 500) -> List[dict]:
    cursor = db.promocodes.find({}).sort("createdAt", -1).limit(limit)
    return await cursor.to_list(length=limit)


async def get_promo(db: AsyncIOMotorDatabase, promo_id: ObjectId) -> Optional[dict]:
    return await db.promocodes.find_one({"_id": promo_id})


async def delete_promo(db: AsyncIOMotorDatabase, promo_id: ObjectId) -> bool:
    result = await db.promocodes.delete_one({"_id": promo_id})
    return result.deleted_count > 0
