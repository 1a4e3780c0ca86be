from __future__ import annotations

from datetime import datetime, timezone

from ..errors import DirectoryError, NotFoundError, PermissionDeniedError
from ..store import DataStore, generate_id
from ..store.models import ChatMessage, Conversation
from .models import ParticipantRole

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def get_conversation(store: DataStore, conversation_id: str) -> Conversation:
    conversation = store.conversation(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found.")
    return conversation


def role_in(store: DataStore, conversation: Conversation, user_id: str) -> ParticipantRole | None:
    """Which side of ``conversation`` the user is on, if any."""
    if conversation.client_id == user_id:
        return ParticipantRole.client
    business = store.business(conversation.business_id)
    if business is not None and business.owner_id == user_id:
        return ParticipantRole.merchant
    return None


def unread_total(store: DataStore, user_id: str) -> int:
    total = 0
    for conversation in conversations_for(store, user_id):
        role = role_in(store, conversation, user_id)
        if role is ParticipantRole.client:
            total += conversation.unread_by_client
        elif role is ParticipantRole.merchant:
            total += conversation.unread_by_business
    return total


def _refresh_unread_counts(store: DataStore, conversation: Conversation) -> None:
    client = store.public_user(conversation.client_id)
    if client is not None:
        client.unread_message_count = unread_total(store, client.id)
    business = store.business(conversation.business_id)
    owner = store.merchant(business.owner_id) if business else None
    if owner is not None:
        owner.unread_message_count = unread_total(store, owner.id)


def start_conversation(store: DataStore, client_id: str, business_id: str) -> Conversation:
    """Return the client's conversation with a business, creating it if needed."""
    with store.lock:
        existing = store.find_conversation(client_id, business_id)
        if existing is not None:
            return existing
        client = store.public_user(client_id)
        if client is None:
            raise NotFoundError("User not found.")
        business = store.business(business_id)
        if business is None:
            raise NotFoundError("Business not found.")
        return store.add_conversation(
            Conversation(
                id=generate_id("conv"),
                client_id=client.id,
                business_id=business.id,
                client_name=f"{client.name} {client.surname}".strip(),
                business_name=business.name,
                business_image_url=business.image_url,
            )
        )


def conversations_for(store: DataStore, user_id: str) -> list[Conversation]:
    """Conversations the user takes part in, most recent activity first."""
    owned = {b.id for b in store.businesses_owned_by(user_id)}
    mine = [c for c in store.conversations() if c.client_id == user_id or c.business_id in owned]
    return sorted(mine, key=lambda c: c.last_message_timestamp or _EPOCH, reverse=True)


def messages_for(store: DataStore, conversation_id: str) -> list[ChatMessage]:
    get_conversation(store, conversation_id)
    return sorted(store.messages_for(conversation_id), key=lambda m: m.timestamp)


def send_message(store: DataStore, conversation_id: str, sender_id: str, content: str) -> ChatMessage:
    content = content.strip()
    if not content:
        raise DirectoryError("Message content is required.")
    with store.lock:
        conversation = get_conversation(store, conversation_id)
        role = role_in(store, conversation, sender_id)
        if role is None:
            raise PermissionDeniedError("You are not part of this conversation.")
        message = store.add_message(
            ChatMessage(
                id=generate_id("msg"),
                conversation_id=conversation.id,
                sender_id=sender_id,
                content=content,
                timestamp=store.clock(),
            )
        )
        conversation.last_message = content
        conversation.last_message_timestamp = message.timestamp
        conversation.last_message_sender_id = sender_id
        if role is ParticipantRole.client:
            conversation.unread_by_business += 1
        else:
            conversation.unread_by_client += 1
        _refresh_unread_counts(store, conversation)
    return message


def mark_read(store: DataStore, conversation_id: str, user_id: str) -> Conversation:
    """Clear the caller's unread counter. Safe to repeat."""
    with store.lock:
        conversation = get_conversation(store, conversation_id)
        role = role_in(store, conversation, user_id)
        if role is None:
            raise PermissionDeniedError("You are not part of this conversation.")
        for message in store.messages_for(conversation.id):
            if message.sender_id != user_id:
                message.is_read = True
        if role is ParticipantRole.client:
            conversation.unread_by_client = 0
        else:
            conversation.unread_by_business = 0
        _refresh_unread_counts(store, conversation)
    return conversation
