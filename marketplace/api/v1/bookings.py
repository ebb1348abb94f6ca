"""Booking endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from marketplace.api.deps import CurrentUser, get_booking_service
from marketplace.core.permissions import require_owner
from marketplace.models.user import User
from marketplace.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
    OwnerBookingResponse,
    TenantBookingResponse,
)
from marketplace.schemas.common import CountResponse
from marketplace.services.booking_service import BookingService

router = APIRouter()

Bookings = Annotated[BookingService, Depends(get_booking_service)]


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user: CurrentUser,
    service: Bookings,
) -> BookingResponse:
    """Request a booking for an active listing."""
    booking = await service.request_booking(
        booking_data.listing_id,
        current_user,
        booking_data.start_date,
        booking_data.end_date,
    )
    return BookingResponse.model_validate(booking)


@router.get("/owner", response_model=list[OwnerBookingResponse])
async def get_owner_bookings(
    current_user: Annotated[User, Depends(require_owner)],
    service: Bookings,
) -> list[OwnerBookingResponse]:
    """List booking requests for the current owner's listings."""
    bookings = await service.list_owner_bookings(current_user)
    return [OwnerBookingResponse.model_validate(b) for b in bookings]


@router.get("/owner/pending-count", response_model=CountResponse)
async def get_owner_pending_count(
    current_user: Annotated[User, Depends(require_owner)],
    service: Bookings,
) -> CountResponse:
    """Count pending requests on the current owner's listings."""
    return CountResponse(count=await service.owner_pending_count(current_user))


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    status_data: BookingStatusUpdate,
    current_user: CurrentUser,
    service: Bookings,
) -> BookingResponse:
    """Confirm or reject a pending booking."""
    booking = await service.decide_booking(booking_id, current_user, status_data.status)
    return BookingResponse.model_validate(booking)


@router.get("/my-bookings", response_model=list[TenantBookingResponse])
async def get_my_bookings(
    current_user: CurrentUser,
    service: Bookings,
) -> list[TenantBookingResponse]:
    """List the current user's bookings."""
    bookings = await service.list_tenant_bookings(current_user)
    return [TenantBookingResponse.model_validate(b) for b in bookings]
