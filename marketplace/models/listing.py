"""Listing-related database models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.database import Base, utcnow

if TYPE_CHECKING:
    from marketplace.models.booking import Booking
    from marketplace.models.review import Review
    from marketplace.models.user import User


class Listing(Base):
    """Rental listing model."""

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Basic Info
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # monthly-rental, daily-rental
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )  # pending, active, rejected, archived

    # Details
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    rooms: Mapped[int | None] = mapped_column(Integer)
    area: Mapped[int | None] = mapped_column(Integer)  # square meters
    location: Mapped[str | None] = mapped_column(String(255), index=True)
    amenities: Mapped[str | None] = mapped_column(Text)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 8))
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(11, 8))

    # Ordered list of photo filenames / public ids
    photos: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="listings")
    analytics: Mapped["Analytics | None"] = relationship(
        "Analytics", back_populates="listing", uselist=False
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="listing")
    reviews: Mapped[list["Review"]] = relationship("Review", back_populates="listing")

    @property
    def is_public(self) -> bool:
        return self.status == "active"


class Analytics(Base):
    """Per-listing view counter."""

    __tablename__ = "analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    views_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    listing: Mapped["Listing"] = relationship("Listing", back_populates="analytics")
