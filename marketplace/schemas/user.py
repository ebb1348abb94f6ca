"""User-related Pydantic schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from marketplace.schemas.listing import ListingCard

PHONE_PATTERN = r"^\+?[0-9][0-9\s\-()]{6,20}$"


class UserCreate(BaseModel):
    """Schema for user registration."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: str
    role: str = Field(default="tenant", pattern="^(tenant|owner)$")

    @field_validator("name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = v.strip()
        if not re.match(PHONE_PATTERN, v):
            raise ValueError("Must be a valid phone number.")
        return v


class UserLogin(BaseModel):
    """Schema for user login."""

    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    """Schema for updating user profile."""

    name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone_number: str | None = None
    bio: str | None = Field(None, max_length=1000)
    profile_photo_url: str | None = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not re.match(PHONE_PATTERN, v):
            raise ValueError("Must be a valid phone number.")
        return v


class PasswordChange(BaseModel):
    """Schema for changing the current user's password."""

    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)
    confirm_new_password: str


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    last_name: str | None
    phone_number: str | None
    bio: str | None
    profile_photo_url: str | None
    role: str
    is_active: bool
    created_at: datetime


class UserPublicResponse(BaseModel):
    """Schema for public user profile (visible to others)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    last_name: str | None
    profile_photo_url: str | None
    bio: str | None
    role: str
    created_at: datetime
    listings: list[ListingCard] = []


class TokenResponse(BaseModel):
    """Schema for authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse | None = None


class RefreshTokenRequest(BaseModel):
    """Schema for token refresh request."""

    refresh_token: str
