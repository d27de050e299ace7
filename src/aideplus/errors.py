"""Exception hierarchy shared by the API client and the chat consumer."""

from __future__ import annotations

from typing import Any


class AidePlusError(Exception):
    """Base class for all aideplus errors."""


class ConfigError(AidePlusError):
    """Configuration file is present but invalid."""


class AuthError(AidePlusError):
    """No usable bearer credential is available."""


class NetworkError(AidePlusError):
    """Connection failure or unsuccessful HTTP status."""


class ApiError(NetworkError):
    """Unsuccessful response from a JSON endpoint."""

    def __init__(self, message: str, status: int | None = None, data: Any = None):
        super().__init__(message)
        self.status = status
        self.data = data


class StreamParseError(AidePlusError):
    """A stream payload could not be parsed. Never surfaced to the user."""


class ValidationError(AidePlusError):
    """Input rejected client-side before any request is made."""


class ChatStateError(AidePlusError):
    """A chat transition was requested from a phase that does not allow it."""
