import re
import unicodedata
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from academy.core.errors import Conflict

MAX_SLUG_ATTEMPTS = 1000

# ==================== SLUGS ====================


def slugify(text: str) -> str:
    text = unicodedata.normalize("NFKD", str(text or "")).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return text.strip("-")


async def make_unique_slug(db: AsyncIOMotorDatabase, base: str, exclude_id: Optional[ObjectId] = None) -> str:
    """base, base-1, base-2, ... whichever is free first"""
    base = slugify(base) or "course"
    slug = base
    for counter in range(1, MAX_SLUG_ATTEMPTS + 1):
        query = {"slug": slug}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if not await db.courses.find_one(query, {"_id": 1}):
            return slug
        slug = f"{base}-{counter}"
    raise Conflict("Could not generate a unique slug")


async def slug_available(db: AsyncIOMotorDatabase, slug: str, exclude_id: Optional[ObjectId] = None) -> bool:
    query = {"slug": slug}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return await db.courses.find_one(query, {"_id": 1}) is None


# ==================== COURSE CRUD ====================


async def find_course(db: AsyncIOMotorDatabase, ref: str) -> Optional[dict]:
    """Look a course up by slug, then by id"""
    ref = (ref or "").strip()
    if not ref:
        return None
    course = await db.courses.find_one({"slug": ref})
    if course is None and ObjectId.is_valid(ref):
        course = await db.courses.find_one({"_id": ObjectId(ref)})
    return course


SORTS = {
    "price_asc": [("price", 1), ("createdAt", -1)],
    "price_desc": [("price", -1), ("createdAt", -1)],
    "newest": [("createdAt", -1)],
}


async def list_courses(
    db: AsyncIOMotorDatabase,
    published_only: bool = True,
    niche: Optional[str] = None,
    category_id: Optional[str] = None,
    sort: str = "newest",
    limit: int = 500,
) -> List[dict]:
    query = {}
    if published_only:
        query["published"] = True
    if niche:
        query["niche"] = niche
    if category_id:
        query["categoryId"] = category_id
    cursor = db.courses.find(query).sort(SORTS.get(sort, SORTS["newest"]))
    return await cursor.to_list(length=limit)


async def create_course(db: AsyncIOMotorDatabase, fields: dict, slug_source: str, created_by: Optional[str] = None) -> dict:
    now = datetime.utcnow()
    course = {
        **fields,
        "slug": await make_unique_slug(db, slug_source),
        "createdBy": created_by,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db.courses.insert_one(course)
    except DuplicateKeyError:
        raise Conflict("Slug already in use")
    course["_id"] = result.inserted_id
    return course


async def update_course(db: AsyncIOMotorDatabase, course_id: ObjectId, fields: dict) -> Optional[dict]:
    fields["updatedAt"] = datetime.utcnow()
    try:
        return await db.courses.find_one_and_update(
            {"_id": course_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise Conflict("Slug already in use")


async def delete_course(db: AsyncIOMotorDatabase, course_id: ObjectId) -> bool:
    result = await db.courses.delete_one({"_id": course_id})
    return result.deleted_count == 1


# ==================== CATEGORIES ====================


async def list_categories(db: AsyncIOMotorDatabase) -> List[dict]:
    return await db.categories.find({}).sort("name", 1).to_list(length=None)


async def create_category(db: AsyncIOMotorDatabase, name: str) -> dict:
    name = name.strip()
    if await db.categories.find_one({"name": name}):
        raise Conflict("Category already exists")
    category = {"name": name, "createdAt": datetime.utcnow()}
    try:
        result = await db.categories.insert_one(category)
    except DuplicateKeyError:
        raise Conflict("Category already exists")
    category["_id"] = result.inserted_id
    return category


async def delete_category(db: AsyncIOMotorDatabase, category_id: ObjectId) -> bool:
    result = await db.categories.delete_one({"_id": category_id})
    return result.deleted_count == 1
