"""User profile, favorites and booking-update endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from marketplace.api.deps import CurrentUser, DbSession, get_booking_service
from marketplace.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from marketplace.core.security import get_password_hash, verify_password
from marketplace.domain.listing_state import ListingStatus
from marketplace.models.favorite import Favorite
from marketplace.models.listing import Listing
from marketplace.models.user import User
from marketplace.schemas.common import CountResponse, StatusMessage
from marketplace.schemas.listing import ListingCard
from marketplace.schemas.user import (
    PasswordChange,
    UserPublicResponse,
    UserResponse,
    UserUpdate,
)
from marketplace.services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC_PROFILE_LISTINGS = 5


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    updates: UserUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> User:
    """Update the current user's profile."""
    update_data = updates.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No update information provided.")

    for field, value in update_data.items():
        setattr(current_user, field, value)
    await db.flush()
    return current_user


@router.post("/change-password", response_model=StatusMessage)
async def change_password(
    passwords: PasswordChange,
    current_user: CurrentUser,
    db: DbSession,
) -> StatusMessage:
    """Change the current user's password."""
    if passwords.new_password != passwords.confirm_new_password:
        raise ValidationError("New passwords do not match.")
    if not verify_password(passwords.current_password, current_user.password_hash):
        raise AuthenticationError("Incorrect old password.")

    current_user.password_hash = get_password_hash(passwords.new_password)
    await db.flush()
    logger.info(f"User {current_user.id} changed password")
    return StatusMessage(message="Password changed successfully.")


@router.get("/public-profile/{user_id}", response_model=UserPublicResponse)
async def get_public_profile(user_id: int, db: DbSession) -> UserPublicResponse:
    """Public profile; owners also show a few of their active listings."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User")

    listings: list[Listing] = []
    if user.role == "owner":
        result = await db.execute(
            select(Listing)
            .where(Listing.owner_id == user.id, Listing.status == ListingStatus.ACTIVE.value)
            .order_by(Listing.created_at.desc(), Listing.id.desc())
            .limit(PUBLIC_PROFILE_LISTINGS)
        )
        listings = list(result.scalars().all())

    return UserPublicResponse(
        id=user.id,
        name=user.name,
        last_name=user.last_name,
        profile_photo_url=user.profile_photo_url,
        bio=user.bio,
        role=user.role,
        created_at=user.created_at,
        listings=[ListingCard.model_validate(l) for l in listings],
    )


@router.get("/me/favorites", response_model=list[ListingCard])
async def get_favorites(current_user: CurrentUser, db: DbSession) -> list[Listing]:
    """Active listings the current user has saved."""
    result = await db.execute(
        select(Listing)
        .join(Favorite, Favorite.listing_id == Listing.id)
        .where(Favorite.user_id == current_user.id, Listing.status == ListingStatus.ACTIVE.value)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
    )
    return list(result.scalars().all())


@router.get("/me/favorites/ids", response_model=list[int])
async def get_favorite_ids(current_user: CurrentUser, db: DbSession) -> list[int]:
    """IDs of every listing the current user has saved."""
    result = await db.execute(
        select(Favorite.listing_id).where(Favorite.user_id == current_user.id)
    )
    return list(result.scalars().all())


@router.post(
    "/me/favorites/{listing_id}",
    response_model=StatusMessage,
    status_code=status.HTTP_201_CREATED,
)
async def add_favorite(listing_id: int, current_user: CurrentUser, db: DbSession) -> StatusMessage:
    """Save a listing to favorites."""
    result = await db.execute(select(Listing.id).where(Listing.id == listing_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Listing")

    result = await db.execute(
        select(Favorite).where(
            Favorite.user_id == current_user.id, Favorite.listing_id == listing_id
        )
    )
    if result.scalar_one_or_none():
        raise ConflictError("Listing is already in favorites.")

    db.add(Favorite(user_id=current_user.id, listing_id=listing_id))
    try:
        await db.flush()
    except IntegrityError:
        raise ConflictError("Listing is already in favorites.")
    return StatusMessage(message="Listing added to favorites.")


@router.delete("/me/favorites/{listing_id}", response_model=StatusMessage)
async def remove_favorite(
    listing_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> StatusMessage:
    """Remove a listing from favorites."""
    result = await db.execute(
        delete(Favorite)
        .where(Favorite.user_id == current_user.id, Favorite.listing_id == listing_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Favorite")
    return StatusMessage(message="Listing removed from favorites.")


@router.get("/me/unread-booking-updates-count", response_model=CountResponse)
async def get_unread_booking_updates_count(
    current_user: CurrentUser,
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> CountResponse:
    """Count decided bookings the tenant has not looked at yet."""
    return CountResponse(count=await service.unseen_updates_count(current_user))


@router.put("/me/acknowledge-booking-updates", response_model=CountResponse)
async def acknowledge_booking_updates(
    current_user: CurrentUser,
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> CountResponse:
    """Mark all booking decisions as seen; returns how many were updated."""
    return CountResponse(count=await service.acknowledge_updates(current_user))
