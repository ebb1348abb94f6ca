"""Admin moderation schemas."""

from pydantic import BaseModel

from marketplace.schemas.common import UserSummary
from marketplace.schemas.listing import ListingResponse


class AdminListingResponse(ListingResponse):
    owner: UserSummary | None = None


class AdminListingPage(BaseModel):
    """Paginated listings across all statuses."""

    total_items: int
    total_pages: int
    current_page: int
    listings: list[AdminListingResponse]


class AdminTasksCount(BaseModel):
    pending_listings: int
