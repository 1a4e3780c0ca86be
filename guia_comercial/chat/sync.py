"""
Pull-based chat synchronisation.

Nothing is pushed by the server: each view polls on a fixed interval, so a
change becomes visible at most one interval later. A failed tick is logged
and the next tick runs as usual; there is no backoff.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable

from ..client import DirectoryClient
from .models import ParticipantRole, ThreadState

logger = logging.getLogger(__name__)

CONVERSATION_POLL_SECONDS = 5.0
NEW_MESSAGE_POLL_SECONDS = 15.0


class PollingLoop:
    """Run ``fn`` every ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, fn: Callable[[], Any], interval: float, name: str = "poll") -> None:
        self.fn = fn
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> None:
        try:
            self.fn()
        except Exception:
            logger.warning("Poll %s failed, retrying next interval", self.name, exc_info=True)

    def _run(self, immediate: bool) -> None:
        if immediate:
            self.tick()
        while not self._stop.wait(self.interval):
            self.tick()

    def start(self, immediate: bool = False) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, args=(immediate,), name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to end; callable from ``fn`` itself."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)


def _unread_key(role: ParticipantRole) -> str:
    return "unread_by_client" if role is ParticipantRole.client else "unread_by_business"


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class ConversationSync:
    """Keeps one viewer's inbox and open thread fresh.

    Thread states go ``idle`` (nothing selected) → ``loading`` → ``loaded``;
    every load also marks the thread read on the server, after which the
    polling loop keeps it current.
    """

    def __init__(
        self,
        api: DirectoryClient,
        user_id: str,
        role: ParticipantRole,
        on_unread_change: Callable[[int], None] | None = None,
        interval: float = CONVERSATION_POLL_SECONDS,
    ) -> None:
        self.api = api
        self.user_id = user_id
        self.role = role
        self.on_unread_change = on_unread_change
        self.conversations: list[dict] = []
        self.messages: list[dict] = []
        self.selected_id: str | None = None
        self.state = ThreadState.idle
        self.unread_count = 0
        self._lock = threading.RLock()
        self._loop = PollingLoop(self.tick, interval, name=f"chat-{user_id}")

    def refresh_conversations(self) -> list[dict]:
        conversations = self.api.get_conversations(self.user_id)
        key = _unread_key(self.role)
        total = sum(c.get(key, 0) for c in conversations)
        with self._lock:
            self.conversations = conversations
            self.unread_count = total
        if self.on_unread_change is not None:
            self.on_unread_change(total)
        return conversations

    def _load_messages(self, conversation_id: str) -> None:
        messages = self.api.get_messages(conversation_id)
        with self._lock:
            if self.selected_id != conversation_id:
                return
            self.messages = messages
            self.state = ThreadState.loaded
        self.api.mark_read(conversation_id, self.user_id)
        self.refresh_conversations()

    def open(self, conversation_id: str) -> None:
        with self._lock:
            self.selected_id = conversation_id
            self.messages = []
            self.state = ThreadState.loading
        self._load_messages(conversation_id)

    def open_with_business(self, business_id: str) -> dict:
        """Start (or resume) the client's conversation with a business and open it."""
        if self.role is not ParticipantRole.client:
            raise ValueError("Only clients can start conversations.")
        conversation = self.api.start_conversation(self.user_id, business_id)
        self.open(conversation["id"])
        return conversation

    def close(self) -> None:
        with self._lock:
            self.selected_id = None
            self.messages = []
            self.state = ThreadState.idle

    def send(self, content: str) -> dict:
        """Create a message, append it locally, then resync the inbox."""
        if not content.strip():
            raise ValueError("Message content is required.")
        with self._lock:
            conversation_id = self.selected_id
        if conversation_id is None:
            raise ValueError("No conversation selected.")
        message = self.api.send_message(conversation_id, self.user_id, content)
        with self._lock:
            if self.selected_id == conversation_id:
                self.messages = [*self.messages, message]
        self.refresh_conversations()
        return message

    def tick(self) -> None:
        self.refresh_conversations()
        with self._lock:
            conversation_id = self.selected_id
        if conversation_id is not None:
            self._load_messages(conversation_id)

    def start(self) -> None:
        self._loop.start(immediate=True)

    def stop(self) -> None:
        self._loop.stop()


class NewMessageWatcher:
    """Application-wide check for messages from the other side.

    The first poll only records a baseline; afterwards a conversation whose
    last message is newer than before and was not sent by the viewer fires
    ``on_new_message(conversation, sender_name)``.
    """

    def __init__(
        self,
        api: DirectoryClient,
        user_id: str,
        role: ParticipantRole,
        on_new_message: Callable[[dict, str], None],
        interval: float = NEW_MESSAGE_POLL_SECONDS,
    ) -> None:
        self.api = api
        self.user_id = user_id
        self.role = role
        self.on_new_message = on_new_message
        self._previous: dict[str, dict] = {}
        self._loop = PollingLoop(self.poll, interval, name=f"inbox-{user_id}")

    def _sender_name(self, conversation: dict) -> str:
        if self.role is ParticipantRole.client:
            return conversation["business_name"]
        return conversation["client_name"]

    def poll(self) -> list[dict]:
        conversations = self.api.get_conversations(self.user_id)
        fresh: list[dict] = []
        if self._previous:
            for conversation in conversations:
                old = self._previous.get(conversation["id"])
                if old is None:
                    continue
                new_ts = _parse_ts(conversation.get("last_message_timestamp"))
                old_ts = _parse_ts(old.get("last_message_timestamp"))
                if (
                    new_ts and old_ts and new_ts > old_ts
                    and conversation.get("last_message_sender_id") != self.user_id
                ):
                    fresh.append(conversation)
        self._previous = {c["id"]: c for c in conversations}
        for conversation in fresh:
            self.on_new_message(conversation, self._sender_name(conversation))
        return fresh

    def start(self) -> None:
        self._loop.start()

    def stop(self) -> None:
        self._loop.stop()
