"""Schemas shared across resources."""

from pydantic import BaseModel, ConfigDict


class StatusMessage(BaseModel):
    """Plain acknowledgement body."""

    message: str


class CountResponse(BaseModel):
    count: int


class UserSummary(BaseModel):
    """Minimal user info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    last_name: str | None = None
    email: str | None = None
