import asyncio
import re
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from academy.registrations.models import RegistrationStatus

# ==================== REGISTRATION CRUD ====================


async def insert_registration(db: AsyncIOMotorDatabase, registration: dict) -> ObjectId:
    now = datetime.utcnow()
    registration.setdefault("createdAt", now)
    registration.setdefault("updatedAt", now)
    result = await db.registrations.insert_one(registration)
    return result.inserted_id


async def get_registration(db: AsyncIOMotorDatabase, registration_id: ObjectId) -> Optional[dict]:
    return await db.registrations.find_one({"_id": registration_id})


async def set_fields(db: AsyncIOMotorDatabase, registration_id: ObjectId, fields: dict) -> Optional[dict]:
    """$set fields and return the updated document (None when missing)"""
    return await db.registrations.find_one_and_update(
        {"_id": registration_id},
        {"$set": fields},
        return_document=ReturnDocument.AFTER,
    )


def build_search_query(status: Optional[str] = None, search: Optional[str] = None) -> dict:
    query = {}
    if status and status.strip():
        query["status"] = status.strip()
    if search and search.strip():
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
            {"paymentProof.txnId": {"$regex": pattern, "$options": "i"}},
            {"course": {"$regex": pattern, "$options": "i"}},
        ]
    return query


async def list_registrations(
    db: AsyncIOMotorDatabase,
    query: dict,
    page: int,
    limit: int,
) -> Tuple[int, List[dict]]:
    """Total count and one page of registrations, newest first"""
    cursor = db.registrations.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
    total, rows = await asyncio.gather(
        db.registrations.count_documents(query),
        cursor.to_list(length=limit),
    )
    return total, rows


# ==================== STATS ====================


async def daily_counts(db: AsyncIOMotorDatabase, days: int, today: Optional[datetime] = None) -> List[dict]:
    """Dense per-day series of registrations created in the last `days` days (UTC)"""
    today = (today or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
    since = today - timedelta(days=days - 1)

    docs = await db.registrations.find({"createdAt": {"$gte": since}}, {"createdAt": 1}).to_list(length=None)
    buckets = {}
    for doc in docs:
        created = doc.get("createdAt")
        if isinstance(created, datetime):
            key = created.date().isoformat()
            buckets[key] = buckets.get(key, 0) + 1

    series = []
    for offset in range(days):
        day = since + timedelta(days=offset)
        series.append({"date": day.isoformat() + "Z", "count": buckets.get(day.date().isoformat(), 0)})
    return series


async def status_counts(db: AsyncIOMotorDatabase) -> dict:
    counts = await asyncio.gather(*[
        db.registrations.count_documents({"status": status.value}) for status in RegistrationStatus
    ])
    return {status.value: count for status, count in zip(RegistrationStatus, counts)}
