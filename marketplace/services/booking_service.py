"""Booking availability engine.

Decides whether a stay can be requested and whether a pending request can be
confirmed without double-booking a listing. Check-then-write sequences run
after taking a row lock on the listing, so concurrent requests for the same
listing are serialised by the database.
"""

import logging
from datetime import date

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.exceptions import (
    AuthorizationError,
    DatesNotAvailable,
    NotFoundError,
    ValidationError,
)
from marketplace.database import utcnow
from marketplace.domain.availability import DateRange, overlap_condition
from marketplace.domain.booking_state import (
    BLOCKING_STATUSES,
    DECIDED_STATUSES,
    BookingStatus,
    assert_booking_transition,
    parse_decision,
)
from marketplace.domain.listing_state import ListingStatus
from marketplace.models.booking import Booking
from marketplace.models.listing import Listing
from marketplace.models.user import User
from marketplace.schemas.booking import BookingResponse
from marketplace.services.notification_service import (
    BOOKING_STATUS_UPDATE_TENANT,
    NEW_BOOKING_REQUEST_OWNER,
    NotificationPublisher,
    notify,
)

logger = logging.getLogger(__name__)


class BookingService:
    """Booking requests, owner decisions and booking read models."""

    def __init__(self, db: AsyncSession, notifier: NotificationPublisher) -> None:
        self.db = db
        self.notifier = notifier

    async def _lock_listing(self, listing_id: int) -> Listing | None:
        result = await self.db.execute(
            select(Listing).where(Listing.id == listing_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def _find_conflict(
        self,
        listing_id: int,
        requested: DateRange,
        statuses: tuple[str, ...],
        exclude_booking_id: int | None = None,
    ) -> Booking | None:
        query = select(Booking).where(
            Booking.listing_id == listing_id,
            Booking.status.in_(statuses),
            overlap_condition(Booking.start_date, Booking.end_date, requested),
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def request_booking(
        self,
        listing_id: int,
        tenant: User,
        start_date: date,
        end_date: date,
    ) -> Booking:
        """Create a pending booking if the dates are free.

        Pending and confirmed bookings both block a new request.
        """
        requested = DateRange(start_date, end_date)
        if start_date < date.today():
            raise ValidationError("Start date cannot be in the past.")

        listing = await self._lock_listing(listing_id)
        if not listing or listing.status != ListingStatus.ACTIVE.value:
            raise NotFoundError("Active listing")
        if listing.owner_id == tenant.id:
            raise AuthorizationError("You cannot book your own listing.")

        conflict = await self._find_conflict(listing.id, requested, BLOCKING_STATUSES)
        if conflict:
            logger.info(
                f"Booking request by user {tenant.id} for listing {listing.id} "
                f"({start_date} to {end_date}) overlaps booking {conflict.id}"
            )
            raise DatesNotAvailable()

        booking = Booking(
            listing_id=listing.id,
            tenant_id=tenant.id,
            start_date=start_date,
            end_date=end_date,
            status=BookingStatus.PENDING.value,
        )
        self.db.add(booking)
        await self.db.flush()
        await self.db.commit()
        logger.info(f"Booking {booking.id} requested by user {tenant.id} for listing {listing.id}")

        await notify(
            self.notifier,
            listing.owner_id,
            NEW_BOOKING_REQUEST_OWNER,
            {
                "message": f"New booking request for '{listing.title}'.",
                "listing_id": listing.id,
                "listing_title": listing.title,
                "tenant_id": tenant.id,
                "tenant_name": tenant.name,
                "nights": requested.nights,
                "booking": BookingResponse.model_validate(booking).model_dump(mode="json"),
            },
        )
        return booking

    async def decide_booking(self, booking_id: int, decider: User, new_status: str) -> Booking:
        """Confirm or reject a pending booking as the listing owner.

        Only other confirmed bookings can block a confirmation; overlapping
        pending requests are allowed to coexist until one of them wins.
        """
        decision = parse_decision(new_status)

        result = await self.db.execute(
            select(Booking).where(Booking.id == booking_id).with_for_update()
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking")

        listing = await self._lock_listing(booking.listing_id)
        if not listing or listing.owner_id != decider.id:
            raise AuthorizationError("Access denied. You do not own the listing for this booking.")

        assert_booking_transition(booking.status, decision.value)

        if decision == BookingStatus.CONFIRMED:
            conflict = await self._find_conflict(
                listing.id,
                DateRange(booking.start_date, booking.end_date),
                (BookingStatus.CONFIRMED.value,),
                exclude_booking_id=booking.id,
            )
            if conflict:
                logger.info(
                    f"Confirmation of booking {booking.id} blocked by confirmed booking {conflict.id}"
                )
                raise DatesNotAvailable(
                    "Cannot confirm booking. Dates conflict with another confirmed booking "
                    "for this listing."
                )

        booking.status = decision.value
        booking.is_update_seen_by_tenant = False
        booking.decided_at = utcnow()
        await self.db.flush()
        await self.db.commit()
        logger.info(f"Booking {booking.id} {decision.value} by owner {decider.id}")

        await notify(
            self.notifier,
            booking.tenant_id,
            BOOKING_STATUS_UPDATE_TENANT,
            {
                "message": f"Your booking for '{listing.title}' was {decision.value}.",
                "booking_id": booking.id,
                "listing_id": listing.id,
                "listing_title": listing.title,
                "status": decision.value,
                "booking": BookingResponse.model_validate(booking).model_dump(mode="json"),
            },
        )
        return booking

    async def list_owner_bookings(self, owner: User) -> list[Booking]:
        """All bookings on the owner's listings, pending first, then newest."""
        result = await self.db.execute(
            select(Booking)
            .join(Listing, Listing.id == Booking.listing_id)
            .where(Listing.owner_id == owner.id)
            .options(
                selectinload(Booking.listing).selectinload(Listing.owner),
                selectinload(Booking.tenant),
            )
            .order_by(
                case((Booking.status == BookingStatus.PENDING.value, 0), else_=1),
                Booking.created_at.desc(),
                Booking.id.desc(),
            )
        )
        return list(result.scalars().all())

    async def list_tenant_bookings(self, tenant: User) -> list[Booking]:
        """The tenant's bookings, latest start date first."""
        result = await self.db.execute(
            select(Booking)
            .where(Booking.tenant_id == tenant.id)
            .options(selectinload(Booking.listing).selectinload(Listing.owner))
            .order_by(Booking.start_date.desc(), Booking.id.desc())
        )
        return list(result.scalars().all())

    async def booked_ranges(self, listing_id: int) -> list[tuple[date, date]]:
        """Confirmed ``[start, end)`` ranges for a listing's public calendar."""
        result = await self.db.execute(
            select(Booking.start_date, Booking.end_date)
            .where(
                Booking.listing_id == listing_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            .order_by(Booking.start_date)
        )
        return [(row.start_date, row.end_date) for row in result.all()]

    async def owner_pending_count(self, owner: User) -> int:
        result = await self.db.execute(
            select(func.count(Booking.id))
            .join(Listing, Listing.id == Booking.listing_id)
            .where(
                Listing.owner_id == owner.id,
                Booking.status == BookingStatus.PENDING.value,
            )
        )
        return result.scalar_one()

    async def unseen_updates_count(self, tenant: User) -> int:
        result = await self.db.execute(
            select(func.count(Booking.id)).where(
                Booking.tenant_id == tenant.id,
                Booking.status.in_(DECIDED_STATUSES),
                Booking.is_update_seen_by_tenant.is_(False),
            )
        )
        return result.scalar_one()

    async def acknowledge_updates(self, tenant: User) -> int:
        """Mark every decided booking of the tenant as seen."""
        result = await self.db.execute(
            update(Booking)
            .where(
                Booking.tenant_id == tenant.id,
                Booking.status.in_(DECIDED_STATUSES),
                Booking.is_update_seen_by_tenant.is_(False),
            )
            .values(is_update_seen_by_tenant=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
