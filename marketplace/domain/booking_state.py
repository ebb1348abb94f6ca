"""Booking state machine."""

from enum import Enum

from marketplace.core.exceptions import AlreadyDecided, ValidationError


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.REJECTED},
    BookingStatus.CONFIRMED: set(),
    BookingStatus.REJECTED: set(),
}

# Statuses that reserve dates when a new request comes in
BLOCKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

# Statuses the tenant is told about through the unread-updates counter
DECIDED_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.REJECTED.value)


def parse_decision(target: str) -> BookingStatus:
    """Validate an owner's decision value."""
    if target not in DECIDED_STATUSES:
        raise ValidationError("Invalid status. Must be 'confirmed' or 'rejected'.")
    return BookingStatus(target)


def assert_booking_transition(current: str, target: str) -> None:
    """Raise unless ``current -> target`` is allowed.

    Once a booking has left ``pending`` every further decision fails with
    AlreadyDecided, whatever the requested target is.
    """
    current_status = BookingStatus(current)
    if BookingStatus(target) not in BOOKING_TRANSITIONS[current_status]:
        raise AlreadyDecided(current_status.value)
