"""Pydantic schemas for API validation."""

from marketplace.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
    OwnerBookingResponse,
    TenantBookingResponse,
)
from marketplace.schemas.common import CountResponse, StatusMessage, UserSummary
from marketplace.schemas.listing import (
    BookedRange,
    ListingCard,
    ListingCreate,
    ListingPage,
    ListingResponse,
    ListingSearchParams,
    ListingUpdate,
)
from marketplace.schemas.message import ChatResponse, MarkReadRequest, MessageCreate
from marketplace.schemas.review import ReviewCreate, ReviewResponse
from marketplace.schemas.user import (
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    UserUpdate,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingResponse",
    "BookingStatusUpdate",
    "OwnerBookingResponse",
    "TenantBookingResponse",
    # Common
    "CountResponse",
    "StatusMessage",
    "UserSummary",
    # Listing
    "BookedRange",
    "ListingCard",
    "ListingCreate",
    "ListingPage",
    "ListingResponse",
    "ListingSearchParams",
    "ListingUpdate",
    # Message
    "ChatResponse",
    "MarkReadRequest",
    "MessageCreate",
    # Review
    "ReviewCreate",
    "ReviewResponse",
    # User
    "TokenResponse",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserUpdate",
]
