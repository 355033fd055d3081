"""
Course catalog endpoints
Public browsing plus admin course and category management
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from academy.admin.auth import get_current_admin
from academy.core.database import get_db, parse_object_id, serialize_many, serialize_mongo
from academy.core.errors import BadRequest, Conflict, NotFound
from academy.courses.database import (
    create_category, create_course, delete_course, find_course, list_categories,
    list_courses, make_unique_slug, slug_available, slugify, update_course,
)
from academy.courses.models import CategoryCreate, CourseCreate, CourseUpdate, course_fields

router = APIRouter(tags=["Courses"])


# ==================== PUBLIC ====================

@router.get("/api/courses")
async def list_published_courses(
    niche: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "newest",
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    courses = await list_courses(db, published_only=True, niche=niche, category_id=category, sort=sort)
    return {"ok": True, "courses": serialize_many(courses)}


@router.get("/api/courses/{slug_or_id}")
async def get_public_course(slug_or_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    course = await find_course(db, slug_or_id)
    if not course or not course.get("published", True):
        raise NotFound("Course not found")
    return {"ok": True, "course": serialize_mongo(course)}


@router.get("/api/categories")
async def list_categories_endpoint(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"ok": True, "categories": serialize_many(await list_categories(db))}


# ==================== ADMIN ====================

@router.get("/api/admin/courses")
async def admin_list_courses(
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"ok": True, "courses": serialize_many(await list_courses(db, published_only=False))}


@router.get("/api/admin/courses/check-slug")
async def check_slug(
    slug: str = "",
    exclude_id: Optional[str] = Query(None, alias="excludeId"),
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    normalized = slugify(slug)
    if not normalized:
        raise BadRequest("Slug is required", code="validation_error")
    exclude = parse_object_id(exclude_id) if exclude_id else None
    available = await slug_available(db, normalized, exclude)
    suggestion = normalized if available else await make_unique_slug(db, normalized, exclude)
    return {"ok": True, "slug": normalized, "available": available, "suggestion": suggestion}


@router.post("/api/admin/courses", status_code=201)
async def admin_create_course(
    data: CourseCreate,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    course = await create_course(db, course_fields(data), data.slug or data.title, created_by=admin.get("sub"))
    return {"ok": True, "course": serialize_mongo(course)}


@router.get("/api/admin/courses/{course_id}")
async def admin_get_course(
    course_id: str,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    course = await db.courses.find_one({"_id": parse_object_id(course_id)})
    if not course:
        raise NotFound("Course not found")
    return {"ok": True, "course": serialize_mongo(course)}


@router.put("/api/admin/courses/{course_id}")
async def admin_update_course(
    course_id: str,
    data: CourseUpdate,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    oid = parse_object_id(course_id)
    fields = course_fields(data, partial=True)
    if data.slug is not None:
        slug = slugify(data.slug)
        if not slug:
            raise BadRequest("Slug is required", code="validation_error")
        if not await slug_available(db, slug, oid):
            raise Conflict("Slug already in use")
        fields["slug"] = slug

    course = await update_course(db, oid, fields)
    if not course:
        raise NotFound("Course not found")
    return {"ok": True, "course": serialize_mongo(course)}


@router.delete("/api/admin/courses/{course_id}")
async def admin_delete_course(
    course_id: str,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not await delete_course(db, parse_object_id(course_id)):
        raise NotFound("Course not found")
    return {"ok": True, "deletedId": course_id}


@router.post("/api/admin/categories", status_code=201)
async def admin_create_category(
    data: CategoryCreate,
    admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    category = await create_category(db, data.name)
    return {"ok": True, "category": serialize_mongo(category)}
