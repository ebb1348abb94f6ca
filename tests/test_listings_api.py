"""Listing endpoints: search, detail, lifecycle, reviews and calendar."""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from marketplace.database import AsyncSessionLocal
from marketplace.models.booking import Booking
from marketplace.models.listing import Analytics, Listing
from marketplace.services.notification_service import (
    ADMIN_CHANNEL,
    ADMIN_NEW_PENDING_LISTING,
    ADMIN_PENDING_COUNT_CHANGED,
)

NEW_LISTING = {
    "title": "Loft with river view",
    "description": "Open plan, fifth floor.",
    "price": "2100.50",
    "rooms": 1,
    "area": 48,
    "location": "Lviv, Rynok",
    "type": "daily-rental",
    "photos": ["loft-1.jpg"],
}


async def views_of(listing_id: int) -> int:
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(func.coalesce(func.sum(Analytics.views_count), 0)).where(
                Analytics.listing_id == listing_id
            )
        )
        return result.scalar_one()


class TestSearch:
    async def test_only_active_listings_are_public(self, client, make_listing, owner):
        active = await make_listing(owner)
        await make_listing(owner, status="pending")
        await make_listing(owner, status="archived")

        response = await client.get("/api/listings")

        assert response.status_code == 200
        body = response.json()
        assert body["total_items"] == 1
        assert body["total_pages"] == 1
        assert body["current_page"] == 1
        assert [l["id"] for l in body["listings"]] == [active.id]

    async def test_filters(self, client, make_listing, owner):
        cheap = await make_listing(owner, price=Decimal("800.00"), rooms=1, location="Odesa")
        await make_listing(owner, price=Decimal("3000.00"), rooms=4, location="Kyiv")
        await make_listing(owner, type="daily-rental", price=Decimal("90.00"), location="Odesa")

        response = await client.get(
            "/api/listings",
            params={"type": "monthly-rental", "price_max": "1000", "location": "odesa"},
        )

        assert [l["id"] for l in response.json()["listings"]] == [cheap.id]

    async def test_text_search_matches_title_and_description(self, client, make_listing, owner):
        by_title = await make_listing(owner, title="Cozy studio with terrace")
        by_description = await make_listing(owner, description="Huge terrace and garden")
        await make_listing(owner, title="Plain flat downtown")

        response = await client.get("/api/listings", params={"search": "terrace"})

        found = {l["id"] for l in response.json()["listings"]}
        assert found == {by_title.id, by_description.id}

    async def test_sort_and_paginate(self, client, make_listing, owner):
        prices = ["500.00", "1500.00", "1000.00"]
        for price in prices:
            await make_listing(owner, price=Decimal(price))

        response = await client.get(
            "/api/listings",
            params={"sort_by": "price", "sort_order": "asc", "limit": 2, "page": 2},
        )

        body = response.json()
        assert body["total_items"] == 3
        assert body["total_pages"] == 2
        assert [Decimal(l["price"]) for l in body["listings"]] == [Decimal("1500")]

    async def test_invalid_sort_column(self, client):
        response = await client.get("/api/listings", params={"sort_by": "owner_id"})

        assert response.status_code == 422

    async def test_results_are_cached_until_a_listing_changes(
        self, client, make_listing, owner, auth_headers
    ):
        await make_listing(owner)
        assert (await client.get("/api/listings")).json()["total_items"] == 1

        # Written behind the API's back, so the cached page is still served
        await make_listing(owner)
        assert (await client.get("/api/listings")).json()["total_items"] == 1

        created = await client.post(
            "/api/listings", json=NEW_LISTING, headers=auth_headers(owner)
        )
        assert created.status_code == 201
        assert (await client.get("/api/listings")).json()["total_items"] == 2

    async def test_map_data(self, client, make_listing, owner):
        placed = await make_listing(owner)
        await make_listing(owner, latitude=None, longitude=None)

        response = await client.get("/api/listings/map-data")

        assert response.status_code == 200
        [marker] = response.json()
        assert marker["id"] == placed.id
        assert marker["coordinates"] == {"lat": 50.465, "lng": 30.515}
        assert marker["photo"] == "flat-1.jpg"


class TestDetail:
    async def test_active_listing_counts_views(self, client, listing, owner, auth_headers):
        first = await client.get(f"/api/listings/{listing.id}")
        await client.get(f"/api/listings/{listing.id}")

        assert first.status_code == 200
        assert first.json()["owner"]["id"] == owner.id
        assert await views_of(listing.id) == 2

        mine = await client.get("/api/listings/owner", headers=auth_headers(owner))
        assert mine.json()[0]["views_count"] == 2

    async def test_hidden_listing_views_are_not_counted(
        self, client, make_listing, owner, auth_headers
    ):
        hidden = await make_listing(owner, status="pending")

        response = await client.get(f"/api/listings/{hidden.id}", headers=auth_headers(owner))

        assert response.status_code == 200
        assert await views_of(hidden.id) == 0

    async def test_hidden_listing_is_not_found_for_strangers(
        self, client, make_listing, owner, tenant, auth_headers
    ):
        hidden = await make_listing(owner, status="pending")

        anonymous = await client.get(f"/api/listings/{hidden.id}")
        stranger = await client.get(f"/api/listings/{hidden.id}", headers=auth_headers(tenant))

        assert anonymous.status_code == 404
        assert stranger.status_code == 404

    async def test_hidden_listing_is_visible_to_owner_and_admin(
        self, client, make_listing, owner, admin, auth_headers
    ):
        hidden = await make_listing(owner, status="rejected")

        for user in (owner, admin):
            response = await client.get(f"/api/listings/{hidden.id}", headers=auth_headers(user))
            assert response.status_code == 200
            assert response.json()["status"] == "rejected"

    async def test_unknown_listing(self, client):
        response = await client.get("/api/listings/999")

        assert response.status_code == 404
        assert response.json() == {"message": "Listing not found."}


class TestLifecycle:
    async def test_create_listing_awaits_moderation(self, client, owner, auth_headers, notifier):
        response = await client.post("/api/listings", json=NEW_LISTING, headers=auth_headers(owner))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["owner_id"] == owner.id
        assert Decimal(body["price"]) == Decimal("2100.50")
        assert body["photos"] == ["loft-1.jpg"]
        [(channel, payload)] = notifier.sent(ADMIN_NEW_PENDING_LISTING)
        assert channel == ADMIN_CHANNEL
        assert payload["listing_id"] == body["id"]

    async def test_tenants_cannot_create_listings(self, client, tenant, auth_headers):
        response = await client.post("/api/listings", json=NEW_LISTING, headers=auth_headers(tenant))

        assert response.status_code == 403

    async def test_create_listing_validates_body(self, client, owner, auth_headers):
        response = await client.post(
            "/api/listings",
            json={**NEW_LISTING, "type": "hourly", "price": "-5"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 422
        fields = {key for error in response.json()["errors"] for key in error}
        assert fields == {"type", "price"}

    async def test_owner_edit_sends_listing_back_to_review(
        self, client, listing, owner, auth_headers, notifier
    ):
        response = await client.put(
            f"/api/listings/{listing.id}",
            json={"price": "1700.00", "photos": ["flat-2.jpg"]},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert Decimal(body["price"]) == Decimal("1700")
        assert body["photos"] == ["flat-2.jpg"]
        assert notifier.sent(ADMIN_PENDING_COUNT_CHANGED)[0][0] == ADMIN_CHANNEL

    async def test_owner_cannot_set_status_through_edit(self, client, listing, owner, auth_headers):
        response = await client.put(
            f"/api/listings/{listing.id}",
            json={"title": "Renamed sunny flat", "status": "active"},
            headers=auth_headers(owner),
        )

        assert response.json()["status"] == "pending"

    async def test_admin_edit_keeps_or_sets_status(self, client, listing, admin, auth_headers):
        kept = await client.put(
            f"/api/listings/{listing.id}",
            json={"title": "Admin fixed the title"},
            headers=auth_headers(admin),
        )
        changed = await client.put(
            f"/api/listings/{listing.id}",
            json={"status": "rejected"},
            headers=auth_headers(admin),
        )

        assert kept.json()["status"] == "active"
        assert kept.json()["title"] == "Admin fixed the title"
        assert changed.json()["status"] == "rejected"

    async def test_other_owner_cannot_edit(self, client, listing, make_user, auth_headers):
        intruder = await make_user(role="owner")

        response = await client.put(
            f"/api/listings/{listing.id}", json={"rooms": 3}, headers=auth_headers(intruder)
        )

        assert response.status_code == 403

    async def test_archive_and_unarchive(self, client, listing, owner, auth_headers, notifier):
        url = f"/api/listings/{listing.id}/archive-status"

        archived = await client.put(url, json={"status": "archived"}, headers=auth_headers(owner))
        again = await client.put(url, json={"status": "archived"}, headers=auth_headers(owner))
        restored = await client.put(url, json={"status": "pending"}, headers=auth_headers(owner))

        assert archived.json()["status"] == "archived"
        assert again.status_code == 200
        assert again.json()["status"] == "archived"
        assert restored.json()["status"] == "pending"
        assert len(notifier.sent(ADMIN_PENDING_COUNT_CHANGED)) == 1

    async def test_owner_cannot_activate_through_archive_toggle(
        self, client, make_listing, owner, auth_headers
    ):
        archived = await make_listing(owner, status="archived")

        response = await client.put(
            f"/api/listings/{archived.id}/archive-status",
            json={"status": "active"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400

    async def test_unarchive_requires_archived_listing(self, client, listing, owner, auth_headers):
        response = await client.put(
            f"/api/listings/{listing.id}/archive-status",
            json={"status": "pending"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Listing is not archived and cannot be unarchived."}

    async def test_delete_removes_listing_and_its_bookings(
        self, client, listing, owner, tenant, make_booking, auth_headers, load
    ):
        booking = await make_booking(listing, tenant, date(2024, 3, 1), date(2024, 3, 3))
        await client.get(f"/api/listings/{listing.id}")

        response = await client.delete(f"/api/listings/{listing.id}", headers=auth_headers(owner))

        assert response.status_code == 200
        assert response.json() == {"message": "Listing deleted successfully."}
        assert await load(Listing, listing.id) is None
        assert await load(Booking, booking.id) is None

    async def test_admin_cannot_delete_someone_elses_listing(
        self, client, listing, admin, auth_headers
    ):
        response = await client.delete(f"/api/listings/{listing.id}", headers=auth_headers(admin))

        assert response.status_code == 403


class TestReviewsAndCalendar:
    async def test_add_and_list_reviews(self, client, listing, tenant, make_user, auth_headers):
        other = await make_user()
        await client.post(
            f"/api/listings/{listing.id}/reviews",
            json={"rating": 4, "comment": "Nice place"},
            headers=auth_headers(tenant),
        )
        created = await client.post(
            f"/api/listings/{listing.id}/reviews",
            json={"rating": 5},
            headers=auth_headers(other),
        )

        assert created.status_code == 201
        assert created.json()["user"]["id"] == other.id

        response = await client.get(f"/api/listings/{listing.id}/reviews")
        assert [r["rating"] for r in response.json()] == [5, 4]

    async def test_rating_must_be_between_one_and_five(self, client, listing, tenant, auth_headers):
        response = await client.post(
            f"/api/listings/{listing.id}/reviews",
            json={"rating": 6},
            headers=auth_headers(tenant),
        )

        assert response.status_code == 422

    async def test_booked_dates_show_confirmed_stays(
        self, client, listing, tenant, make_booking
    ):
        await make_booking(listing, tenant, date(2024, 3, 1), date(2024, 3, 3), status="confirmed")
        await make_booking(listing, tenant, date(2024, 4, 1), date(2024, 4, 3))

        response = await client.get(f"/api/listings/{listing.id}/booked-dates")

        assert response.json() == [{"start_date": "2024-03-01", "end_date": "2024-03-03"}]
