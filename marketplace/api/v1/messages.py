"""Messaging endpoints: sending, threads, chats and read receipts."""

import logging

from fastapi import APIRouter, status
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import selectinload

from marketplace.api.deps import CurrentUser, DbSession, Notifier
from marketplace.core.exceptions import NotFoundError, ValidationError
from marketplace.models.listing import Listing
from marketplace.models.message import Message
from marketplace.models.user import User
from marketplace.schemas.common import CountResponse, UserSummary
from marketplace.schemas.message import (
    ChatListingSummary,
    ChatResponse,
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
)
from marketplace.services.notification_service import (
    MESSAGES_READ_UPDATE,
    NEW_MESSAGE_NOTIFICATION,
    notify,
)

logger = logging.getLogger(__name__)

router = APIRouter()
chats_router = APIRouter()
threads_router = APIRouter()


def _between(user_a: int, user_b: int):
    return or_(
        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
    )


async def _get_listing(db, listing_id: int) -> Listing:
    result = await db.execute(select(Listing).where(Listing.id == listing_id))
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFoundError("Listing")
    return listing


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user: CurrentUser,
    db: DbSession,
    notifier: Notifier,
) -> MessageResponse:
    """Send a message about a listing.

    Non-owners always write to the listing owner; the owner has to say who
    the message is for.
    """
    listing = await _get_listing(db, message_data.listing_id)

    if current_user.id == listing.owner_id:
        if message_data.receiver_id is None:
            raise ValidationError("Receiver ID is required when the owner sends a message.")
        receiver_id = message_data.receiver_id
    else:
        receiver_id = listing.owner_id

    if receiver_id == current_user.id:
        raise ValidationError("Cannot send message to yourself.")

    result = await db.execute(select(User).where(User.id == receiver_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Receiver")

    message = Message(
        listing_id=listing.id,
        sender_id=current_user.id,
        receiver_id=receiver_id,
        content=message_data.content,
        sender=current_user,
    )
    db.add(message)
    await db.flush()
    await db.commit()
    logger.info(f"Message {message.id} sent by user {current_user.id} to user {receiver_id}")

    response = MessageResponse.model_validate(message)
    payload = response.model_dump(mode="json")
    await notify(notifier, receiver_id, NEW_MESSAGE_NOTIFICATION, payload)
    await notify(notifier, current_user.id, NEW_MESSAGE_NOTIFICATION, payload)
    return response


@router.put("/read", response_model=MarkReadResponse)
async def mark_messages_read(
    read_data: MarkReadRequest,
    current_user: CurrentUser,
    db: DbSession,
    notifier: Notifier,
) -> MarkReadResponse:
    """Mark the counter-party's messages on a listing as read."""
    result = await db.execute(
        update(Message)
        .where(
            Message.listing_id == read_data.listing_id,
            Message.sender_id == read_data.other_user_id,
            Message.receiver_id == current_user.id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    updated_count = result.rowcount
    await db.commit()

    payload = {
        "listing_id": read_data.listing_id,
        "reader_id": current_user.id,
        "other_user_id": read_data.other_user_id,
        "updated_count": updated_count,
    }
    await notify(notifier, current_user.id, MESSAGES_READ_UPDATE, payload)
    await notify(notifier, read_data.other_user_id, MESSAGES_READ_UPDATE, payload)
    return MarkReadResponse(message="Messages marked as read.", updated_count=updated_count)


@router.get("/unread-count", response_model=CountResponse)
async def get_unread_count(current_user: CurrentUser, db: DbSession) -> CountResponse:
    """Count unread messages addressed to the current user."""
    result = await db.execute(
        select(func.count(Message.id)).where(
            Message.receiver_id == current_user.id,
            Message.is_read.is_(False),
        )
    )
    return CountResponse(count=result.scalar_one())


@threads_router.get("/{listing_id}/messages", response_model=list[MessageResponse])
async def get_listing_thread(
    listing_id: int,
    current_user: CurrentUser,
    db: DbSession,
    other_user_id: int | None = None,
) -> list[Message]:
    """Messages between the current user and one counter-party, oldest first."""
    listing = await _get_listing(db, listing_id)

    if current_user.id == listing.owner_id:
        if other_user_id is None:
            return []
        counterparty_id = other_user_id
    else:
        counterparty_id = listing.owner_id

    result = await db.execute(
        select(Message)
        .where(Message.listing_id == listing.id, _between(current_user.id, counterparty_id))
        .options(selectinload(Message.sender))
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(result.scalars().all())


@chats_router.get("/my-chats", response_model=list[ChatResponse])
async def get_my_chats(current_user: CurrentUser, db: DbSession) -> list[ChatResponse]:
    """Conversations of the current user, most recent first."""
    result = await db.execute(
        select(Message)
        .where(or_(Message.sender_id == current_user.id, Message.receiver_id == current_user.id))
        .options(
            selectinload(Message.listing),
            selectinload(Message.sender),
            selectinload(Message.receiver),
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
    )

    chats: dict[tuple[int, int], ChatResponse] = {}
    for message in result.scalars().all():
        other_user = message.receiver if message.sender_id == current_user.id else message.sender
        key = (message.listing_id, other_user.id)
        chat = chats.get(key)
        if chat is None:
            chat = ChatResponse(
                listing=ChatListingSummary(
                    id=message.listing.id,
                    title=message.listing.title,
                    photo=message.listing.photos[0] if message.listing.photos else None,
                ),
                other_user=UserSummary.model_validate(other_user),
                is_listing_owner=message.listing.owner_id == current_user.id,
                last_message=message.content,
                last_message_at=message.created_at,
                last_message_sender_id=message.sender_id,
                unread_count=0,
            )
            chats[key] = chat
        if message.receiver_id == current_user.id and not message.is_read:
            chat.unread_count += 1

    return list(chats.values())
