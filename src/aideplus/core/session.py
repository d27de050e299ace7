"""Auth session holding the bearer credential for API calls."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from aideplus.errors import AuthError
from aideplus.log import get_logger

logger = get_logger(__name__)


class AuthSession:
    """Holds the access token issued by the external auth provider.

    Created by the application at startup and passed to whatever needs a
    credential; ``sign_out`` at shutdown drops the token.
    """

    def __init__(self) -> None:
        self._access_token: Optional[str] = None
        self._expires_at: Optional[datetime] = None

    def sign_in(self, access_token: str, expires_at: Optional[datetime] = None) -> None:
        token = access_token.strip()
        if not token:
            raise AuthError("Empty access token")
        self._access_token = token
        self._expires_at = expires_at
        logger.info("session_signed_in", expires_at=expires_at.isoformat() if expires_at else None)

    def sign_out(self) -> None:
        if self._access_token is not None:
            logger.info("session_signed_out")
        self._access_token = None
        self._expires_at = None

    @property
    def is_authenticated(self) -> bool:
        if self._access_token is None:
            return False
        if self._expires_at is not None and self._expires_at <= datetime.now(timezone.utc):
            return False
        return True

    def get_access_token(self) -> str:
        """Return the current token or raise AuthError if there is none."""
        if self._access_token is None:
            raise AuthError("Not signed in")
        if not self.is_authenticated:
            raise AuthError("Access token expired")
        return self._access_token
