"""Application orchestrator - wires all components and manages lifecycle."""

from __future__ import annotations

from typing import Optional

import httpx

from aideplus.api.chat import ChatApi
from aideplus.api.client import ApiClient
from aideplus.chat.controller import ChatController
from aideplus.config import AppConfig
from aideplus.core.session import AuthSession
from aideplus.log import get_logger
from aideplus.ui.base import ChatView

logger = get_logger(__name__)


class AidePlusApp:
    """Top-level application orchestrator.

    Owns the auth session and the HTTP connection pool; both live between
    ``start()`` and ``stop()``.
    """

    def __init__(
        self,
        config: AppConfig,
        view: ChatView,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.session = AuthSession()
        self.http = httpx.AsyncClient(timeout=config.api.timeout, transport=transport)
        self.api_client = ApiClient(config.api, self.session, self.http)
        self.chat_api = ChatApi(
            self.api_client, self.session, max_message_length=config.chat.max_message_length
        )
        self.chat = ChatController(self.chat_api, view, config.chat)

    async def start(self) -> None:
        """Sign in with the configured token, if any."""
        if self.config.auth.access_token:
            self.session.sign_in(self.config.auth.access_token)
        else:
            logger.warning("no_access_token_configured")
        logger.info("aideplus_started", base_url=self.config.api.base_url)

    async def stop(self) -> None:
        """Drop the credential and close open connections."""
        self.session.sign_out()
        await self.http.aclose()
        logger.info("aideplus_stopped")

    async def __aenter__(self) -> AidePlusApp:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
