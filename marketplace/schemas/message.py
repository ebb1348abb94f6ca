"""Messaging-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.schemas.common import UserSummary


class MessageCreate(BaseModel):
    """Schema for sending a message about a listing."""

    listing_id: int = Field(..., ge=1)
    content: str = Field(..., min_length=1, max_length=5000)
    receiver_id: int | None = Field(None, ge=1)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message content cannot be empty.")
        return v


class MarkReadRequest(BaseModel):
    """Schema for marking a conversation as read."""

    listing_id: int = Field(..., ge=1)
    other_user_id: int = Field(..., ge=1)


class MessageResponse(BaseModel):
    """Schema for message response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime
    sender: UserSummary | None = None


class ChatListingSummary(BaseModel):
    id: int
    title: str
    photo: str | None = None


class ChatResponse(BaseModel):
    """A derived conversation: one listing and one counter-party."""

    listing: ChatListingSummary
    other_user: UserSummary
    is_listing_owner: bool
    last_message: str
    last_message_at: datetime
    last_message_sender_id: int
    unread_count: int


class MarkReadResponse(BaseModel):
    message: str
    updated_count: int
