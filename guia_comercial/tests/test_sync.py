from __future__ import annotations

import itertools
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from guia_comercial.app import app
from guia_comercial.auth.passwords import hash_password
from guia_comercial.chat import service as chat_service
from guia_comercial.chat.models import ParticipantRole, ThreadState
from guia_comercial.chat.sync import ConversationSync, NewMessageWatcher, PollingLoop
from guia_comercial.client import ApiClientError, DirectoryClient
from guia_comercial.store import DataStore, get_store
from guia_comercial.store.models import PublicUser


CLIENT_PASSWORD_HASH = hash_password("secreto1")


def _ticking_clock():
    start = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


class _ChatHarness:
    """Wire a fresh store into the app and talk to it through DirectoryClient."""

    def setup_method(self):
        self.store = DataStore(clock=_ticking_clock())
        self.store.add_public_user(
            PublicUser(
                id="pub1",
                name="Lucía",
                surname="Díaz",
                email="lucia@example.com",
                password_hash=CLIENT_PASSWORD_HASH,
            )
        )
        app.dependency_overrides[get_store] = lambda: self.store
        self.api = DirectoryClient(http=TestClient(app))
        # one session carries both sides so the same client can act as either
        self.api.public_login("lucia@example.com", "secreto1")
        self.api.login("juan.perez@example.com", "password123")

    def teardown_method(self):
        app.dependency_overrides.clear()


# ── PollingLoop ──────────────────────────────────────────────────────────


class TestPollingLoop:
    def test_tick_swallows_failures(self, caplog):
        fn = MagicMock(side_effect=RuntimeError("server down"))
        loop = PollingLoop(fn, interval=60, name="test")
        loop.tick()
        fn.assert_called_once()
        assert "Poll test failed" in caplog.text

    def test_keeps_polling_after_failure(self):
        done = threading.Event()
        calls = []

        def fn():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first tick fails")
            done.set()

        loop = PollingLoop(fn, interval=0.01)
        loop.start()
        assert done.wait(2.0)
        loop.stop(timeout=2.0)
        assert not loop.running
        assert len(calls) >= 2

    def test_stop_from_inside_poll(self):
        done = threading.Event()
        errors: list[RuntimeError] = []

        def fn():
            try:
                loop.stop()
            except RuntimeError as exc:
                errors.append(exc)
            done.set()

        loop = PollingLoop(fn, interval=0.01)
        loop.start()
        assert done.wait(2.0)
        assert errors == []
        assert not loop.running

    def test_immediate_start(self):
        done = threading.Event()
        loop = PollingLoop(done.set, interval=60)
        loop.start(immediate=True)
        assert done.wait(2.0)
        loop.stop(timeout=2.0)
        assert not loop.running


# ── ConversationSync ─────────────────────────────────────────────────────


class TestConversationSync(_ChatHarness):
    def test_open_marks_read_and_updates_badge(self):
        conv = self.api.start_conversation("pub1", "co1")
        chat_service.send_message(self.store, conv["id"], "u1", "¡Hola! ¿En qué te ayudo?")

        counts: list[int] = []
        sync = ConversationSync(self.api, "pub1", ParticipantRole.client, on_unread_change=counts.append)
        sync.refresh_conversations()
        assert sync.unread_count == 1
        assert sync.state is ThreadState.idle

        sync.open(conv["id"])
        assert sync.state is ThreadState.loaded
        assert [m["content"] for m in sync.messages] == ["¡Hola! ¿En qué te ayudo?"]
        assert counts[0] == 1 and counts[-1] == 0
        assert self.store.conversation(conv["id"]).unread_by_client == 0

    def test_send_appends_and_resyncs(self):
        sync = ConversationSync(self.api, "pub1", ParticipantRole.client)
        sync.open_with_business("co1")
        sync.send("¿Abren los domingos?")
        assert [m["content"] for m in sync.messages] == ["¿Abren los domingos?"]
        assert sync.conversations[0]["last_message"] == "¿Abren los domingos?"
        assert sync.conversations[0]["unread_by_business"] == 1

    def test_send_requires_selection_and_content(self):
        sync = ConversationSync(self.api, "pub1", ParticipantRole.client)
        with pytest.raises(ValueError):
            sync.send("Hola")
        sync.open_with_business("co1")
        with pytest.raises(ValueError):
            sync.send("   ")

    def test_tick_picks_up_replies(self):
        sync = ConversationSync(self.api, "pub1", ParticipantRole.client)
        conv = sync.open_with_business("co1")
        chat_service.send_message(self.store, conv["id"], "u1", "Sí, de 10 a 14")
        sync.tick()
        assert [m["content"] for m in sync.messages] == ["Sí, de 10 a 14"]
        assert sync.unread_count == 0

    def test_close_returns_to_idle(self):
        sync = ConversationSync(self.api, "pub1", ParticipantRole.client)
        sync.open_with_business("co1")
        sync.close()
        assert sync.state is ThreadState.idle
        assert sync.messages == [] and sync.selected_id is None

    def test_only_clients_start_conversations(self):
        sync = ConversationSync(self.api, "u1", ParticipantRole.merchant)
        with pytest.raises(ValueError):
            sync.open_with_business("co1")

    def test_logged_out_viewer_is_refused(self):
        self.api.http.post("/api/logout")
        sync = ConversationSync(self.api, "pub1", ParticipantRole.client)
        with pytest.raises(ApiClientError) as exc:
            sync.refresh_conversations()
        assert exc.value.status_code == 401

    def test_merchant_badge_counts_business_side(self):
        conv = self.api.start_conversation("pub1", "co1")
        self.api.send_message(conv["id"], "pub1", "Hola")
        self.api.send_message(conv["id"], "pub1", "¿Están?")
        sync = ConversationSync(self.api, "u1", ParticipantRole.merchant)
        sync.refresh_conversations()
        assert sync.unread_count == 2


# ── NewMessageWatcher ────────────────────────────────────────────────────


class TestNewMessageWatcher(_ChatHarness):
    def test_first_poll_is_baseline(self):
        conv = self.api.start_conversation("pub1", "co1")
        self.api.send_message(conv["id"], "u1", "Hola")
        callback = MagicMock()
        watcher = NewMessageWatcher(self.api, "pub1", ParticipantRole.client, callback)
        assert watcher.poll() == []
        callback.assert_not_called()

    def test_notifies_on_message_from_other_side(self):
        conv = self.api.start_conversation("pub1", "co1")
        self.api.send_message(conv["id"], "pub1", "Hola")
        callback = MagicMock()
        watcher = NewMessageWatcher(self.api, "pub1", ParticipantRole.client, callback)
        watcher.poll()

        self.api.send_message(conv["id"], "u1", "¡Buenas!")
        fresh = watcher.poll()
        assert [c["id"] for c in fresh] == [conv["id"]]
        callback.assert_called_once()
        assert callback.call_args.args[1] == "La Pizzería de Juan"

    def test_ignores_own_messages(self):
        conv = self.api.start_conversation("pub1", "co1")
        self.api.send_message(conv["id"], "pub1", "Hola")
        callback = MagicMock()
        watcher = NewMessageWatcher(self.api, "pub1", ParticipantRole.client, callback)
        watcher.poll()
        self.api.send_message(conv["id"], "pub1", "¿Hay alguien?")
        assert watcher.poll() == []
        callback.assert_not_called()

    def test_merchant_sees_client_name(self):
        conv = self.api.start_conversation("pub1", "co1")
        self.api.send_message(conv["id"], "u1", "Bienvenida")
        callback = MagicMock()
        watcher = NewMessageWatcher(self.api, "u1", ParticipantRole.merchant, callback)
        watcher.poll()
        self.api.send_message(conv["id"], "pub1", "Gracias")
        watcher.poll()
        assert callback.call_args.args[1] == "Lucía Díaz"
