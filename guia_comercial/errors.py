"""Error taxonomy shared by the service layer and the HTTP API."""
from __future__ import annotations


class DirectoryError(Exception):
    """Base class for errors surfaced to API callers as ``{"error": ...}``."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DirectoryError):
    status_code = 404


class ConflictError(DirectoryError):
    status_code = 409


class AuthenticationError(DirectoryError):
    status_code = 401


class PermissionDeniedError(DirectoryError):
    status_code = 403
