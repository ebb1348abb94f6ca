"""Review schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketplace.schemas.common import UserSummary


class ReviewCreate(BaseModel):
    """Schema for creating a review."""

    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    """Schema for review response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_id: int
    user_id: int
    rating: int
    comment: str | None
    created_at: datetime
    user: UserSummary | None = None
