"""Listing moderation and archive rules."""

from enum import Enum

from marketplace.core.exceptions import ValidationError


class ListingStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    ARCHIVED = "archived"


def parse_listing_status(value: str) -> ListingStatus:
    try:
        return ListingStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ListingStatus)
        raise ValidationError(f"Invalid status value. Must be one of: {allowed}.")


def admin_status_change(current: str, target: str) -> ListingStatus:
    """Admins may set any status except the one the listing already has."""
    target_status = parse_listing_status(target)
    if ListingStatus(current) == target_status:
        raise ValidationError(f"Listing is already {target_status.value}.")
    return target_status


def owner_archive_change(current: str, target: str) -> ListingStatus:
    """Resolve an owner's archive or unarchive request.

    Archiving an archived listing is a no-op. Unarchiving is requested as
    ``pending`` and sends the listing back to moderation.
    """
    current_status = ListingStatus(current)
    target_status = parse_listing_status(target)

    if target_status == ListingStatus.ARCHIVED:
        if current_status == ListingStatus.ARCHIVED:
            return current_status
        return ListingStatus.ARCHIVED

    if target_status == ListingStatus.PENDING:
        if current_status != ListingStatus.ARCHIVED:
            raise ValidationError("Listing is not archived and cannot be unarchived.")
        return ListingStatus.PENDING

    raise ValidationError("Owners can only archive a listing or unarchive it to pending.")


def needs_review_after_owner_edit(current: str) -> bool:
    """Content edits by an owner send a reviewed listing back to moderation."""
    return ListingStatus(current) != ListingStatus.PENDING
