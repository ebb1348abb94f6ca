"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.schemas.common import UserSummary


class BookingCreate(BaseModel):
    """Schema for requesting a booking."""

    listing_id: int = Field(..., ge=1)
    start_date: date
    end_date: date

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: date, info) -> date:
        start_date = info.data.get("start_date")
        if start_date and v <= start_date:
            raise ValueError("End date must be after start date.")
        return v


class BookingStatusUpdate(BaseModel):
    """Schema for an owner's decision on a pending booking."""

    status: Literal["confirmed", "rejected"]


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_id: int
    tenant_id: int
    start_date: date
    end_date: date
    status: str
    is_update_seen_by_tenant: bool
    decided_at: datetime | None
    created_at: datetime
    updated_at: datetime


class BookingListingSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    location: str | None
    owner: UserSummary | None = None


class OwnerBookingResponse(BookingResponse):
    """Booking on one of the owner's listings."""

    listing: BookingListingSummary
    tenant: UserSummary


class TenantBookingResponse(BookingResponse):
    """Booking made by the current tenant, with the listing owner."""

    listing: BookingListingSummary
