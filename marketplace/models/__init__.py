"""Database models."""

from marketplace.models.booking import Booking
from marketplace.models.favorite import Favorite
from marketplace.models.listing import Analytics, Listing
from marketplace.models.message import Message
from marketplace.models.review import Review
from marketplace.models.user import User

__all__ = [
    # User
    "User",
    "Favorite",
    # Listing
    "Listing",
    "Analytics",
    "Review",
    # Booking
    "Booking",
    # Message
    "Message",
]
