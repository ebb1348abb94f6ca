"""API dependencies for authentication and shared services."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.cache import ResponseCache
from marketplace.core.exceptions import AppException, AuthenticationError
from marketplace.core.security import verify_token
from marketplace.database import get_db
from marketplace.models.user import User
from marketplace.services.booking_service import BookingService
from marketplace.services.notification_service import NotificationPublisher

# Security scheme; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)


async def _load_user(db: AsyncSession, token: str) -> User:
    payload = verify_token(token, token_type="access")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")
    return user


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from the bearer token."""
    if not credentials:
        raise AuthenticationError("Not authorized, no token")
    user = await _load_user(db, credentials.credentials)
    request.state.user_id = user.id
    return user


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Optionally get the current user; bad tokens count as anonymous."""
    if not credentials:
        return None
    try:
        return await _load_user(db, credentials.credentials)
    except AppException:
        return None


def get_notifier(request: Request) -> NotificationPublisher:
    return request.app.state.notifier


def get_response_cache(request: Request) -> ResponseCache:
    return request.app.state.response_cache


def get_booking_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[NotificationPublisher, Depends(get_notifier)],
) -> BookingService:
    return BookingService(db, notifier)


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Notifier = Annotated[NotificationPublisher, Depends(get_notifier)]
Cache = Annotated[ResponseCache, Depends(get_response_cache)]
