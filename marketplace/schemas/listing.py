"""Listing-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.schemas.common import UserSummary


class ListingBase(BaseModel):
    """Base listing schema."""

    title: str = Field(..., min_length=5, max_length=100)
    description: str | None = Field(None, max_length=5000)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    rooms: int | None = Field(None, ge=0)
    area: int | None = Field(None, ge=0)
    location: str = Field(..., min_length=3, max_length=255)
    amenities: str | None = None
    type: str = Field(..., pattern="^(monthly-rental|daily-rental)$")
    latitude: Decimal | None = Field(None, ge=-90, le=90)
    longitude: Decimal | None = Field(None, ge=-180, le=180)

    @field_validator("title", "location")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class ListingCreate(ListingBase):
    """Schema for creating a listing."""

    photos: list[str] = Field(default_factory=list, max_length=20)


class ListingUpdate(BaseModel):
    """Schema for updating a listing.

    ``photos`` is the complete ordered list to keep; admins may also set
    ``status`` in the same request.
    """

    title: str | None = Field(None, min_length=5, max_length=100)
    description: str | None = Field(None, max_length=5000)
    price: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    rooms: int | None = Field(None, ge=0)
    area: int | None = Field(None, ge=0)
    location: str | None = Field(None, min_length=3, max_length=255)
    amenities: str | None = None
    type: str | None = Field(None, pattern="^(monthly-rental|daily-rental)$")
    latitude: Decimal | None = Field(None, ge=-90, le=90)
    longitude: Decimal | None = Field(None, ge=-180, le=180)
    photos: list[str] | None = Field(None, max_length=20)
    status: str | None = Field(None, pattern="^(pending|active|rejected|archived)$")


class ListingStatusUpdate(BaseModel):
    """Schema for status changes (owner archive toggle and admin moderation)."""

    status: str


class ListingCard(BaseModel):
    """Compact listing used in lists and embedded summaries."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    price: Decimal
    rooms: int | None
    area: int | None
    location: str | None
    type: str
    status: str
    photos: list[str]
    created_at: datetime


class ListingResponse(BaseModel):
    """Schema for listing response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    title: str
    description: str | None
    price: Decimal
    rooms: int | None
    area: int | None
    location: str | None
    amenities: str | None
    type: str
    status: str
    photos: list[str]
    latitude: Decimal | None
    longitude: Decimal | None
    created_at: datetime
    updated_at: datetime


class ListingDetailResponse(ListingResponse):
    """Listing with its owner summary."""

    owner: UserSummary | None = None


class OwnerListingResponse(ListingResponse):
    """Listing as shown to its owner, with view statistics."""

    views_count: int = 0


class ListingSearchParams(BaseModel):
    """Query parameters for public listing search."""

    type: str | None = Field(None, pattern="^(monthly-rental|daily-rental)$")
    price_min: Decimal | None = Field(None, ge=0)
    price_max: Decimal | None = Field(None, ge=0)
    rooms_min: int | None = Field(None, ge=0)
    location: str | None = None
    search: str | None = None
    sort_by: str = Field(default="created_at", pattern="^(created_at|price|rooms|area)$")
    sort_order: str = Field(default="desc", pattern="^(asc|desc)$")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=12, ge=1, le=100)


class ListingPage(BaseModel):
    """Paginated listing search result."""

    total_items: int
    total_pages: int
    current_page: int
    listings: list[ListingCard]


class MapCoordinates(BaseModel):
    lat: float
    lng: float


class MapListing(BaseModel):
    """Listing marker for the map view."""

    id: int
    title: str
    price: Decimal
    type: str
    coordinates: MapCoordinates
    photo: str | None


class BookedRange(BaseModel):
    """A confirmed stay, half-open ``[start_date, end_date)``."""

    start_date: date
    end_date: date
