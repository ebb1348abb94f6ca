"""Authentication endpoints."""

import logging

from fastapi import APIRouter, status
from sqlalchemy import select

from marketplace.api.deps import CurrentUser, DbSession
from marketplace.core.exceptions import AuthenticationError, ConflictError
from marketplace.core.security import (
    create_tokens,
    get_password_hash,
    verify_password,
    verify_token,
)
from marketplace.models.user import User
from marketplace.schemas.user import (
    RefreshTokenRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: DbSession) -> User:
    """Register a new tenant or owner account."""
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise ConflictError("User with this email already exists.")

    user = User(
        email=email,
        password_hash=get_password_hash(user_data.password),
        role=user_data.role,
        name=user_data.name,
        last_name=user_data.last_name,
        phone_number=user_data.phone_number,
    )
    db.add(user)
    await db.flush()
    logger.info(f"User {user.id} registered as {user.role}")
    return user


@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, db: DbSession) -> TokenResponse:
    """Login with email and password."""
    result = await db.execute(select(User).where(User.email == credentials.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    tokens = create_tokens(user.id, user.role)
    return TokenResponse(**tokens, user=UserResponse.model_validate(user))


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request: RefreshTokenRequest, db: DbSession) -> TokenResponse:
    """Refresh access token using refresh token."""
    payload = verify_token(request.refresh_token, token_type="refresh")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")

    # Verify user still exists and is active
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    tokens = create_tokens(user.id, user.role)
    return TokenResponse(**tokens, user=UserResponse.model_validate(user))


@router.get("/user", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> User:
    """Get the current authenticated user."""
    return current_user
