"""HTTP client for the directory API, used by the chat synchronisation loops."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """A failed API call, carrying a message fit for display."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _handle_response(response: httpx.Response) -> Any:
    if not response.is_success:
        try:
            payload = response.json()
        except ValueError:
            raise ApiClientError(
                f"Error {response.status_code}: {response.reason_phrase}. "
                "No further information from the server.",
                response.status_code,
            ) from None
        message = payload.get("error") if isinstance(payload, dict) else None
        raise ApiClientError(
            message or f"The server responded with error {response.status_code}.",
            response.status_code,
        )

    if response.status_code == 204:
        return {}
    try:
        return response.json()
    except ValueError:
        raise ApiClientError("The server response succeeded but its format is invalid.") from None


class DirectoryClient:
    """Thin wrapper over the ``/api`` endpoints.

    ``http`` may be any ``httpx.Client`` (including FastAPI's ``TestClient``);
    by default one is created for ``base_url``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SETTINGS.api_base_url,
        http: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self.http.request(method, f"/api{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise ApiClientError(f"Could not reach the server: {exc}") from exc
        return _handle_response(response)

    def close(self) -> None:
        self.http.close()

    # ── Session ─────────────────────────────────────────────────────────

    def login(self, email: str, password: str) -> dict:
        """Log in as a merchant; the session cookie stays on ``http``."""
        return self._request("POST", "/login", json={"email": email, "password": password})

    def public_login(self, email: str, password: str) -> dict:
        return self._request("POST", "/public-login", json={"email": email, "password": password})

    # ── Chat ────────────────────────────────────────────────────────────

    def start_conversation(self, client_id: str, business_id: str) -> dict:
        return self._request(
            "POST", "/conversations/start",
            json={"client_id": client_id, "business_id": business_id},
        )

    def get_conversations(self, user_id: str) -> list[dict]:
        return self._request("GET", f"/conversations/{user_id}")

    def get_messages(self, conversation_id: str) -> list[dict]:
        return self._request("GET", f"/messages/{conversation_id}")

    def send_message(self, conversation_id: str, sender_id: str, content: str) -> dict:
        return self._request(
            "POST", "/messages",
            json={"conversation_id": conversation_id, "sender_id": sender_id, "content": content},
        )

    def mark_read(self, conversation_id: str, user_id: str) -> dict:
        return self._request("POST", f"/conversations/{conversation_id}/read", json={"user_id": user_id})

    # ── Tracking ────────────────────────────────────────────────────────

    def track_event(self, business_id: str, event_type: str, user_id: str | None = None) -> None:
        """Fire-and-forget: failures are logged, never raised."""
        try:
            self._request(
                "POST", "/track",
                json={"business_id": business_id, "event_type": event_type, "user_id": user_id},
            )
        except ApiClientError:
            logger.warning("Tracking event %s for %s failed", event_type, business_id, exc_info=True)
