"""Shared fixtures: in-memory database, HTTP client and data factories."""

import os

# Settings are read at import time, so configure the environment first
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "false"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["NOTIFICATION_BACKEND"] = "local"

import itertools
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

import marketplace.models  # noqa: F401
from marketplace.core.security import create_tokens, get_password_hash
from marketplace.database import AsyncSessionLocal, Base, engine
from marketplace.main import app
from marketplace.models.booking import Booking
from marketplace.models.listing import Listing
from marketplace.models.user import User

DEFAULT_PASSWORD = "secret123"


class RecordingNotifier:
    """Publisher that keeps every event instead of sending it."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        self.events.append((channel, event, payload))

    def sent(self, event: str) -> list[tuple[str, dict[str, Any]]]:
        return [(channel, payload) for channel, name, payload in self.events if name == event]


@pytest.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    # Dropping the single pooled connection discards the in-memory database
    await engine.dispose()


@pytest.fixture
def notifier() -> RecordingNotifier:
    live = app.state.notifier
    recorder = RecordingNotifier()
    app.state.notifier = recorder
    yield recorder
    app.state.notifier = live


@pytest.fixture
async def client(notifier: RecordingNotifier) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await app.state.response_cache.close()


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_tokens(user.id, user.role)["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def make_user():
    counter = itertools.count(1)

    async def _make_user(
        role: str = "tenant",
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        name: str | None = None,
        is_active: bool = True,
    ) -> User:
        n = next(counter)
        async with AsyncSessionLocal() as session:
            user = User(
                email=email or f"{role}{n}@example.com",
                password_hash=get_password_hash(password),
                role=role,
                name=name or f"{role.title()}{n}",
                last_name="Tester",
                phone_number="+380501234567",
                is_active=is_active,
            )
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest.fixture
def make_listing():
    async def _make_listing(owner: User, status: str = "active", **fields: Any) -> Listing:
        values = {
            "title": "Sunny flat near the park",
            "description": "Two rooms, balcony, quiet street.",
            "price": Decimal("1500.00"),
            "rooms": 2,
            "area": 55,
            "location": "Kyiv, Podil",
            "type": "monthly-rental",
            "latitude": Decimal("50.4650000"),
            "longitude": Decimal("30.5150000"),
            "photos": ["flat-1.jpg", "flat-2.jpg"],
        }
        values.update(fields)
        async with AsyncSessionLocal() as session:
            listing = Listing(owner_id=owner.id, status=status, **values)
            session.add(listing)
            await session.commit()
            return listing

    return _make_listing


@pytest.fixture
def make_booking():
    async def _make_booking(
        listing: Listing,
        tenant: User,
        start_date: date,
        end_date: date,
        status: str = "pending",
        is_update_seen_by_tenant: bool = True,
    ) -> Booking:
        async with AsyncSessionLocal() as session:
            booking = Booking(
                listing_id=listing.id,
                tenant_id=tenant.id,
                start_date=start_date,
                end_date=end_date,
                status=status,
                is_update_seen_by_tenant=is_update_seen_by_tenant,
            )
            session.add(booking)
            await session.commit()
            return booking

    return _make_booking


@pytest.fixture
async def owner(make_user) -> User:
    return await make_user(role="owner")


@pytest.fixture
async def tenant(make_user) -> User:
    return await make_user(role="tenant")


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user(role="admin")


@pytest.fixture
async def listing(make_listing, owner) -> Listing:
    return await make_listing(owner)


async def fetch(model, object_id: int):
    """Load a fresh copy of a row, bypassing any request session."""
    async with AsyncSessionLocal() as session:
        return await session.get(model, object_id)


@pytest.fixture
def load():
    return fetch
