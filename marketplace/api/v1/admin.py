"""Admin moderation endpoints."""

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy import case, func, select
from sqlalchemy.orm import selectinload

from marketplace.api.deps import Cache, DbSession, Notifier
from marketplace.core.cache import LISTINGS_PREFIX
from marketplace.core.exceptions import NotFoundError
from marketplace.core.permissions import require_admin
from marketplace.domain.listing_state import (
    ListingStatus,
    admin_status_change,
    parse_listing_status,
)
from marketplace.models.listing import Listing
from marketplace.models.user import User
from marketplace.schemas.admin import AdminListingPage, AdminListingResponse, AdminTasksCount
from marketplace.schemas.listing import ListingResponse, ListingStatusUpdate
from marketplace.services.notification_service import (
    ADMIN_CHANNEL,
    ADMIN_PENDING_COUNT_CHANGED,
    LISTING_STATUS_UPDATED_BY_ADMIN,
    notify,
    publish_safely,
)

logger = logging.getLogger(__name__)

router = APIRouter()

AdminUser = Annotated[User, Depends(require_admin)]


@router.get("/listings", response_model=AdminListingPage)
async def get_admin_listings(
    admin: AdminUser,
    db: DbSession,
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> AdminListingPage:
    """List listings in every status, pending first, then newest."""
    query = select(Listing)
    if status_filter:
        query = query.where(Listing.status == parse_listing_status(status_filter).value)

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar_one()

    result = await db.execute(
        query.options(selectinload(Listing.owner))
        .order_by(
            case((Listing.status == ListingStatus.PENDING.value, 0), else_=1),
            Listing.created_at.desc(),
            Listing.id.desc(),
        )
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return AdminListingPage(
        total_items=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
        listings=[AdminListingResponse.model_validate(l) for l in result.scalars().all()],
    )


@router.put("/listings/{listing_id}/status", response_model=ListingResponse)
async def update_listing_status(
    listing_id: int,
    status_data: ListingStatusUpdate,
    admin: AdminUser,
    db: DbSession,
    notifier: Notifier,
    cache: Cache,
) -> ListingResponse:
    """Moderate a listing."""
    parse_listing_status(status_data.status)

    result = await db.execute(select(Listing).where(Listing.id == listing_id))
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFoundError("Listing")

    previous_status = listing.status
    listing.status = admin_status_change(previous_status, status_data.status).value
    await db.flush()
    await db.commit()
    logger.info(
        f"Admin {admin.id} changed listing {listing.id} status {previous_status} -> {listing.status}"
    )

    await cache.invalidate_prefix(LISTINGS_PREFIX)
    await notify(
        notifier,
        listing.owner_id,
        LISTING_STATUS_UPDATED_BY_ADMIN,
        {
            "message": f"Your listing '{listing.title}' is now {listing.status}.",
            "listing_id": listing.id,
            "status": listing.status,
            "previous_status": previous_status,
        },
    )
    if ListingStatus.PENDING.value in (listing.status, previous_status):
        await publish_safely(
            notifier,
            ADMIN_CHANNEL,
            ADMIN_PENDING_COUNT_CHANGED,
            {
                "message": f"Listing '{listing.title}' status changed by admin {admin.name}.",
                "listing_id": listing.id,
            },
        )
    return ListingResponse.model_validate(listing)


@router.get("/tasks-count", response_model=AdminTasksCount)
async def get_tasks_count(admin: AdminUser, db: DbSession) -> AdminTasksCount:
    """Count listings waiting for moderation."""
    result = await db.execute(
        select(func.count(Listing.id)).where(Listing.status == ListingStatus.PENDING.value)
    )
    return AdminTasksCount(pending_listings=result.scalar_one())
