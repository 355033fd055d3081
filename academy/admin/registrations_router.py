"""
Admin registration endpoints
Listing, stats, manual entry and the verify/reject decision
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query

from academy.admin.auth import actor_identity, get_current_admin
from academy.core.database import AppContext, get_ctx, parse_object_id, serialize_mongo
from academy.core.errors import NotFound
from academy.registrations.database import (
    build_search_query, daily_counts, get_registration, list_registrations, status_counts,
)
from academy.registrations.models import AdminRegistrationCreate, VerificationRequest
from academy.registrations.service import create_admin_registration
from academy.registrations.workflow import registration_warnings, transition_registration

router = APIRouter(prefix="/api/admin/registrations", tags=["Admin registrations"])

DEFAULT_PAGE_SIZE = 12
MIN_PAGE_SIZE = 5
MAX_PAGE_SIZE = 100


def with_warnings(registration: dict) -> dict:
    row = serialize_mongo(registration)
    row["warnings"] = registration_warnings(registration)
    return row


@router.get("")
async def list_registrations_endpoint(
    status: Optional[str] = None,
    q: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    admin: dict = Depends(get_current_admin),
    ctx: AppContext = Depends(get_ctx),
):
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(MIN_PAGE_SIZE, limit))
    total, rows = await list_registrations(ctx.db, build_search_query(status, q), page, limit)
    total_pages = max(1, math.ceil(total / limit))
    return {
        "ok": True,
        "registrations": [with_warnings(row) for row in rows],
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


@router.get("/stats")
async def registration_stats(
    days: int = Query(30),
    admin: dict = Depends(get_current_admin),
    ctx: AppContext = Depends(get_ctx),
):
    days = min(90, max(1, days))
    series = await daily_counts(ctx.db, days)
    return {
        "ok": True,
        "days": days,
        "total": sum(point["count"] for point in series),
        "series": series,
        "statusCounts": await status_counts(ctx.db),
    }


@router.post("", status_code=201)
async def create_registration_endpoint(
    data: AdminRegistrationCreate,
    admin: dict = Depends(get_current_admin),
    ctx: AppContext = Depends(get_ctx),
):
    registration = await create_admin_registration(ctx, data, actor_identity(admin))
    return {"ok": True, "registration": with_warnings(registration)}


@router.get("/{registration_id}")
async def get_registration_endpoint(
    registration_id: str,
    admin: dict = Depends(get_current_admin),
    ctx: AppContext = Depends(get_ctx),
):
    registration = await get_registration(ctx.db, parse_object_id(registration_id))
    if not registration:
        raise NotFound("Registration not found")
    return {"ok": True, "registration": with_warnings(registration)}


@router.put("/{registration_id}/verify")
async def verify_registration_endpoint(
    registration_id: str,
    body: VerificationRequest,
    admin: dict = Depends(get_current_admin),
    ctx: AppContext = Depends(get_ctx),
):
    outcome = await transition_registration(
        ctx,
        registration_id,
        body.action,
        actor_identity(admin),
        notes=body.verification_notes,
        paid_override=body.paid,
    )
    return {
        "ok": True,
        "registration": serialize_mongo(outcome.registration),
        "email": outcome.email,
        "createUser": outcome.create_user,
        "warnings": outcome.warnings,
    }
