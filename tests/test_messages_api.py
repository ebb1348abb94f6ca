"""Messaging endpoints."""

from marketplace.services.notification_service import (
    MESSAGES_READ_UPDATE,
    NEW_MESSAGE_NOTIFICATION,
)


async def send(client, headers, listing_id, content, receiver_id=None):
    body = {"listing_id": listing_id, "content": content}
    if receiver_id is not None:
        body["receiver_id"] = receiver_id
    return await client.post("/api/messages", json=body, headers=headers)


async def test_tenant_message_goes_to_owner(client, listing, owner, tenant, auth_headers, notifier):
    response = await send(client, auth_headers(tenant), listing.id, "  Is it still free?  ")

    assert response.status_code == 201
    message = response.json()
    assert message["receiver_id"] == owner.id
    assert message["content"] == "Is it still free?"
    assert message["sender"]["id"] == tenant.id
    channels = [channel for channel, _ in notifier.sent(NEW_MESSAGE_NOTIFICATION)]
    assert channels == [f"user:{owner.id}", f"user:{tenant.id}"]


async def test_owner_must_name_receiver(client, listing, owner, auth_headers):
    response = await send(client, auth_headers(owner), listing.id, "Hello")

    assert response.status_code == 400


async def test_owner_cannot_message_self(client, listing, owner, auth_headers):
    response = await send(client, auth_headers(owner), listing.id, "Hello", receiver_id=owner.id)

    assert response.status_code == 400
    assert response.json() == {"message": "Cannot send message to yourself."}


async def test_owner_reply_to_unknown_user(client, listing, owner, auth_headers):
    response = await send(client, auth_headers(owner), listing.id, "Hello", receiver_id=999)

    assert response.status_code == 404
    assert response.json() == {"message": "Receiver not found."}


async def test_message_about_unknown_listing(client, tenant, auth_headers):
    response = await send(client, auth_headers(tenant), 999, "Hello")

    assert response.status_code == 404


async def test_blank_message_is_rejected(client, listing, tenant, auth_headers):
    response = await send(client, auth_headers(tenant), listing.id, "   ")

    assert response.status_code == 422


async def test_thread_and_read_receipts(client, listing, owner, tenant, auth_headers, notifier):
    await send(client, auth_headers(tenant), listing.id, "First")
    await send(client, auth_headers(owner), listing.id, "Reply", receiver_id=tenant.id)
    await send(client, auth_headers(tenant), listing.id, "Second")

    thread = await client.get(
        f"/api/listings/{listing.id}/messages",
        params={"other_user_id": tenant.id},
        headers=auth_headers(owner),
    )
    assert [m["content"] for m in thread.json()] == ["First", "Reply", "Second"]

    tenant_view = await client.get(
        f"/api/listings/{listing.id}/messages", headers=auth_headers(tenant)
    )
    assert len(tenant_view.json()) == 3

    unread = await client.get("/api/messages/unread-count", headers=auth_headers(owner))
    assert unread.json() == {"count": 2}

    marked = await client.put(
        "/api/messages/read",
        json={"listing_id": listing.id, "other_user_id": tenant.id},
        headers=auth_headers(owner),
    )
    assert marked.json() == {"message": "Messages marked as read.", "updated_count": 2}
    channels = {channel for channel, _ in notifier.sent(MESSAGES_READ_UPDATE)}
    assert channels == {f"user:{owner.id}", f"user:{tenant.id}"}

    unread = await client.get("/api/messages/unread-count", headers=auth_headers(owner))
    assert unread.json() == {"count": 0}


async def test_owner_thread_without_counterparty_is_empty(client, listing, owner, tenant, auth_headers):
    await send(client, auth_headers(tenant), listing.id, "First")

    response = await client.get(f"/api/listings/{listing.id}/messages", headers=auth_headers(owner))

    assert response.status_code == 200
    assert response.json() == []


async def test_my_chats_groups_by_listing_and_counterparty(
    client, listing, owner, tenant, make_user, auth_headers
):
    other_tenant = await make_user()
    await send(client, auth_headers(tenant), listing.id, "From first tenant")
    await send(client, auth_headers(other_tenant), listing.id, "From second tenant")
    await send(client, auth_headers(tenant), listing.id, "Another from first")

    response = await client.get("/api/chats/my-chats", headers=auth_headers(owner))

    chats = response.json()
    assert [c["other_user"]["id"] for c in chats] == [tenant.id, other_tenant.id]
    assert chats[0]["last_message"] == "Another from first"
    assert chats[0]["unread_count"] == 2
    assert chats[0]["is_listing_owner"] is True
    assert chats[0]["listing"] == {"id": listing.id, "title": listing.title, "photo": "flat-1.jpg"}

    tenant_chats = (await client.get("/api/chats/my-chats", headers=auth_headers(tenant))).json()
    assert len(tenant_chats) == 1
    assert tenant_chats[0]["is_listing_owner"] is False
    assert tenant_chats[0]["unread_count"] == 0
