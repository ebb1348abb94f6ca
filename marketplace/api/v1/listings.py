"""Listing endpoints."""

import logging
import math
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.orm import selectinload

from marketplace.api.deps import (
    Cache,
    CurrentUser,
    DbSession,
    Notifier,
    OptionalUser,
    get_booking_service,
)
from marketplace.core.cache import LISTINGS_PREFIX, ResponseCache, build_cache_key
from marketplace.core.exceptions import AuthorizationError, NotFoundError
from marketplace.core.permissions import UserRole, require_owner
from marketplace.domain.listing_state import (
    ListingStatus,
    admin_status_change,
    needs_review_after_owner_edit,
    owner_archive_change,
)
from marketplace.models.booking import Booking
from marketplace.models.favorite import Favorite
from marketplace.models.listing import Analytics, Listing
from marketplace.models.message import Message
from marketplace.models.review import Review
from marketplace.models.user import User
from marketplace.schemas.common import StatusMessage
from marketplace.schemas.listing import (
    BookedRange,
    ListingCard,
    ListingCreate,
    ListingDetailResponse,
    ListingPage,
    ListingResponse,
    ListingSearchParams,
    ListingStatusUpdate,
    ListingUpdate,
    MapListing,
    OwnerListingResponse,
)
from marketplace.schemas.review import ReviewCreate, ReviewResponse
from marketplace.services.booking_service import BookingService
from marketplace.services.notification_service import (
    ADMIN_CHANNEL,
    ADMIN_NEW_PENDING_LISTING,
    ADMIN_PENDING_COUNT_CHANGED,
    publish_safely,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SORT_COLUMNS = {
    "created_at": Listing.created_at,
    "price": Listing.price,
    "rooms": Listing.rooms,
    "area": Listing.area,
}


def _apply_filters(query: Select, params: ListingSearchParams) -> Select:
    query = query.where(Listing.status == ListingStatus.ACTIVE.value)
    if params.type:
        query = query.where(Listing.type == params.type)
    if params.price_min is not None:
        query = query.where(Listing.price >= params.price_min)
    if params.price_max is not None:
        query = query.where(Listing.price <= params.price_max)
    if params.rooms_min is not None:
        query = query.where(Listing.rooms >= params.rooms_min)
    if params.location:
        query = query.where(Listing.location.ilike(f"%{params.location}%"))
    if params.search:
        pattern = f"%{params.search}%"
        query = query.where(or_(Listing.title.ilike(pattern), Listing.description.ilike(pattern)))
    return query


async def _cached_json(cache: ResponseCache, request: Request, build) -> Any:
    """Serve a read-only listing query from the response cache."""
    key = build_cache_key(LISTINGS_PREFIX, request.url.path, dict(request.query_params))
    cached = await cache.get(key)
    if cached is not None:
        logger.debug(f"Cache hit for {request.url}")
        return cached

    body = await build()
    await cache.set(key, body)
    return body


async def _get_listing(db, listing_id: int) -> Listing:
    result = await db.execute(select(Listing).where(Listing.id == listing_id))
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFoundError("Listing")
    return listing


def _ensure_can_manage(listing: Listing, user: User) -> None:
    if listing.owner_id != user.id and user.role != UserRole.ADMIN.value:
        raise AuthorizationError("You do not have permission to modify this listing.")


@router.get("", response_model=ListingPage)
async def search_listings(
    request: Request,
    params: Annotated[ListingSearchParams, Query()],
    db: DbSession,
    cache: Cache,
) -> Any:
    """Search active listings."""

    async def build() -> dict[str, Any]:
        query = _apply_filters(select(Listing), params)
        total_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = total_result.scalar_one()

        sort_column = SORT_COLUMNS[params.sort_by]
        order = sort_column.asc() if params.sort_order == "asc" else sort_column.desc()
        result = await db.execute(
            query.order_by(order, Listing.id.desc())
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
        )
        page = ListingPage(
            total_items=total,
            total_pages=math.ceil(total / params.limit),
            current_page=params.page,
            listings=[ListingCard.model_validate(l) for l in result.scalars().all()],
        )
        return page.model_dump(mode="json")

    return await _cached_json(cache, request, build)


@router.get("/map-data", response_model=list[MapListing])
async def get_map_data(
    request: Request,
    params: Annotated[ListingSearchParams, Query()],
    db: DbSession,
    cache: Cache,
) -> Any:
    """Active listings with coordinates, for the map view."""

    async def build() -> list[dict[str, Any]]:
        query = _apply_filters(select(Listing), params).where(
            Listing.latitude.is_not(None), Listing.longitude.is_not(None)
        )
        result = await db.execute(query.order_by(Listing.id))
        return [
            MapListing(
                id=listing.id,
                title=listing.title,
                price=listing.price,
                type=listing.type,
                coordinates={"lat": float(listing.latitude), "lng": float(listing.longitude)},
                photo=listing.photos[0] if listing.photos else None,
            ).model_dump(mode="json")
            for listing in result.scalars().all()
        ]

    return await _cached_json(cache, request, build)


@router.get("/owner", response_model=list[OwnerListingResponse])
async def get_owner_listings(
    current_user: CurrentUser,
    db: DbSession,
) -> list[OwnerListingResponse]:
    """Get all listings of the current user, in any status."""
    result = await db.execute(
        select(Listing)
        .where(Listing.owner_id == current_user.id)
        .options(selectinload(Listing.analytics))
        .order_by(Listing.created_at.desc(), Listing.id.desc())
    )
    return [
        OwnerListingResponse.model_validate(listing).model_copy(
            update={"views_count": listing.analytics.views_count if listing.analytics else 0}
        )
        for listing in result.scalars().all()
    ]


@router.get("/{listing_id}", response_model=ListingDetailResponse)
async def get_listing(
    listing_id: int,
    db: DbSession,
    current_user: OptionalUser,
) -> ListingDetailResponse:
    """Get a listing by ID."""
    result = await db.execute(
        select(Listing).where(Listing.id == listing_id).options(selectinload(Listing.owner))
    )
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFoundError("Listing")

    is_owner = current_user is not None and current_user.id == listing.owner_id
    is_admin = current_user is not None and current_user.role == UserRole.ADMIN.value
    if not (listing.is_public or is_owner or is_admin):
        raise NotFoundError("Listing")

    if listing.is_public:
        counted = await db.execute(
            update(Analytics)
            .where(Analytics.listing_id == listing.id)
            .values(views_count=Analytics.views_count + 1)
            .execution_options(synchronize_session=False)
        )
        if counted.rowcount == 0:
            db.add(Analytics(listing_id=listing.id, views_count=1))
        await db.flush()

    return ListingDetailResponse.model_validate(listing)


@router.post("", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(
    listing_data: ListingCreate,
    current_user: Annotated[User, Depends(require_owner)],
    db: DbSession,
    notifier: Notifier,
    cache: Cache,
) -> ListingResponse:
    """Create a new listing awaiting moderation."""
    listing = Listing(
        owner_id=current_user.id,
        status=ListingStatus.PENDING.value,
        **listing_data.model_dump(),
    )
    db.add(listing)
    await db.flush()
    await db.commit()
    logger.info(f"Listing {listing.id} created by user {current_user.id}")

    await cache.invalidate_prefix(LISTINGS_PREFIX)
    await publish_safely(
        notifier,
        ADMIN_CHANNEL,
        ADMIN_NEW_PENDING_LISTING,
        {"message": f"New listing '{listing.title}' needs approval.", "listing_id": listing.id},
    )
    return ListingResponse.model_validate(listing)


@router.put("/{listing_id}", response_model=ListingResponse)
async def update_listing(
    listing_id: int,
    updates: ListingUpdate,
    current_user: Annotated[User, Depends(require_owner)],
    db: DbSession,
    notifier: Notifier,
    cache: Cache,
) -> ListingResponse:
    """Update listing content; owner edits go back to moderation."""
    listing = await _get_listing(db, listing_id)
    _ensure_can_manage(listing, current_user)

    update_data = updates.model_dump(exclude_unset=True)
    requested_status = update_data.pop("status", None)
    previous_status = listing.status

    for field, value in update_data.items():
        setattr(listing, field, value)

    if current_user.role == UserRole.ADMIN.value:
        if requested_status and requested_status != previous_status:
            listing.status = admin_status_change(previous_status, requested_status).value
    elif needs_review_after_owner_edit(previous_status):
        listing.status = ListingStatus.PENDING.value

    await db.flush()
    await db.commit()
    logger.info(
        f"Listing {listing.id} updated by user {current_user.id} "
        f"(status {previous_status} -> {listing.status})"
    )

    await cache.invalidate_prefix(LISTINGS_PREFIX)
    if listing.status != previous_status and ListingStatus.PENDING.value in (
        listing.status,
        previous_status,
    ):
        await publish_safely(
            notifier,
            ADMIN_CHANNEL,
            ADMIN_PENDING_COUNT_CHANGED,
            {
                "message": f"Listing '{listing.title}' was updated and now requires approval.",
                "listing_id": listing.id,
            },
        )
    return ListingResponse.model_validate(listing)


@router.put("/{listing_id}/archive-status", response_model=ListingResponse)
async def update_archive_status(
    listing_id: int,
    status_data: ListingStatusUpdate,
    current_user: Annotated[User, Depends(require_owner)],
    db: DbSession,
    notifier: Notifier,
    cache: Cache,
) -> ListingResponse:
    """Archive or unarchive a listing."""
    listing = await _get_listing(db, listing_id)
    _ensure_can_manage(listing, current_user)

    previous_status = listing.status
    if current_user.role == UserRole.ADMIN.value:
        if status_data.status == previous_status:
            return ListingResponse.model_validate(listing)
        new_status = admin_status_change(previous_status, status_data.status)
    else:
        new_status = owner_archive_change(previous_status, status_data.status)

    if new_status.value == previous_status:
        return ListingResponse.model_validate(listing)

    listing.status = new_status.value
    await db.flush()
    await db.commit()
    logger.info(
        f"Listing {listing.id} status {previous_status} -> {listing.status} by user {current_user.id}"
    )

    await cache.invalidate_prefix(LISTINGS_PREFIX)
    if ListingStatus.PENDING.value in (listing.status, previous_status):
        await publish_safely(
            notifier,
            ADMIN_CHANNEL,
            ADMIN_PENDING_COUNT_CHANGED,
            {
                "message": f"Listing '{listing.title}' (ID: {listing.id}) is now {listing.status}.",
                "listing_id": listing.id,
            },
        )
    return ListingResponse.model_validate(listing)


@router.delete("/{listing_id}", response_model=StatusMessage)
async def delete_listing(
    listing_id: int,
    current_user: CurrentUser,
    db: DbSession,
    cache: Cache,
) -> StatusMessage:
    """Delete one of the current user's listings."""
    listing = await _get_listing(db, listing_id)
    if listing.owner_id != current_user.id:
        raise AuthorizationError("You do not have permission to delete this listing.")

    for model in (Booking, Message, Favorite, Review, Analytics):
        await db.execute(delete(model).where(model.listing_id == listing.id))
    await db.execute(delete(Listing).where(Listing.id == listing.id))
    await db.commit()
    logger.info(f"Listing {listing_id} deleted by user {current_user.id}")

    await cache.invalidate_prefix(LISTINGS_PREFIX)
    return StatusMessage(message="Listing deleted successfully.")


@router.get("/{listing_id}/reviews", response_model=list[ReviewResponse])
async def get_listing_reviews(
    listing_id: int,
    db: DbSession,
) -> list[Review]:
    """List reviews of a listing, newest first."""
    result = await db.execute(
        select(Review)
        .where(Review.listing_id == listing_id)
        .options(selectinload(Review.user))
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    return list(result.scalars().all())


@router.post(
    "/{listing_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    listing_id: int,
    review_data: ReviewCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ReviewResponse:
    """Review a listing."""
    await _get_listing(db, listing_id)

    review = Review(
        listing_id=listing_id,
        user_id=current_user.id,
        rating=review_data.rating,
        comment=review_data.comment,
        user=current_user,
    )
    db.add(review)
    await db.flush()
    logger.info(f"Review {review.id} added to listing {listing_id} by user {current_user.id}")

    return ReviewResponse.model_validate(review)


@router.get("/{listing_id}/booked-dates", response_model=list[BookedRange])
async def get_booked_dates(
    listing_id: int,
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> list[BookedRange]:
    """Confirmed stays of a listing for calendar display."""
    ranges = await service.booked_ranges(listing_id)
    return [BookedRange(start_date=start, end_date=end) for start, end in ranges]
