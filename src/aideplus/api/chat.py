"""Chat endpoints: the streaming and plain chat requests and the conversation REST calls."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from aideplus.api.client import ApiClient
from aideplus.chat.models import ChatMessage, ChatReply, ConversationSummary, Page, Role, Usage
from aideplus.core.session import AuthSession
from aideplus.errors import ApiError, ValidationError
from aideplus.log import get_logger

logger = get_logger(__name__)

CHAT_PATH = "/ai/chat"
CHAT_STREAM_PATH = "/ai/chat/stream"
CONVERSATIONS_PATH = "/ai/conversations"
USAGE_PATH = "/ai/usage"
FEEDBACK_PATH = "/ai/feedback"

MAX_FEEDBACK_COMMENT = 1000


def _unwrap(envelope: Any) -> Any:
    if isinstance(envelope, dict) and "data" in envelope:
        return envelope["data"]
    return envelope


def _unwrap_mapping(envelope: Any, path: str) -> dict[str, Any]:
    """Envelope data that must be an object; anything else is a server fault."""
    data = _unwrap(envelope)
    if not isinstance(data, dict):
        logger.warning("api_unexpected_shape", path=path, type=type(data).__name__)
        raise ApiError("Unexpected response shape")
    return data


def _rows(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    rows = data.get(key) or []
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise ApiError("Unexpected response shape")
    return rows


def build_stream_request(
    message: str,
    conversation_id: Optional[str] = None,
    context: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """Request body shared by the streaming and non-streaming chat endpoints."""
    body: dict[str, Any] = {"message": message}
    if conversation_id:
        body["conversationId"] = conversation_id
    if context:
        body["context"] = context
    return body


class ChatApi:
    def __init__(self, client: ApiClient, session: AuthSession, max_message_length: int = 4000):
        self._client = client
        self._session = session
        self._max_message_length = max_message_length

    @asynccontextmanager
    async def open_stream(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        context: Optional[dict[str, str]] = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Post a user message and yield the raw body chunks of the reply.

        Raises:
            ValidationError: empty or over-long message.
            AuthError: no access token in the session.
            NetworkError: connection failure or non-2xx status.
        """
        text = self._checked(message)
        token = self._session.get_access_token()
        body = build_stream_request(text, conversation_id, context)
        logger.info("chat_stream_request", conversation_id=conversation_id, length=len(text))
        async with self._client.stream_post(CHAT_STREAM_PATH, body, token) as response:
            yield response.aiter_bytes()

    async def chat(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        context: Optional[dict[str, str]] = None,
    ) -> ChatReply:
        """Send a message and wait for the whole answer in one response.

        Same validation and credential rules as ``open_stream``; a 429 from
        the monthly quota surfaces as ApiError with ``status == 429``.
        """
        text = self._checked(message)
        self._session.get_access_token()
        logger.info("chat_request", conversation_id=conversation_id, length=len(text))
        envelope = await self._client.post(CHAT_PATH, build_stream_request(text, conversation_id, context))
        return ChatReply.from_api(_unwrap_mapping(envelope, CHAT_PATH))

    def _checked(self, message: str) -> str:
        text = message.strip()
        if not text:
            raise ValidationError("Message is empty")
        if len(text) > self._max_message_length:
            raise ValidationError(
                f"Message exceeds {self._max_message_length} characters"
            )
        return text

    async def list_conversations(
        self, page: int = 1, limit: int = 20
    ) -> tuple[list[ConversationSummary], Page]:
        envelope = await self._client.get(CONVERSATIONS_PATH, {"page": page, "limit": limit})
        data = _unwrap_mapping(envelope, CONVERSATIONS_PATH)
        conversations = [ConversationSummary.from_api(row) for row in _rows(data, "conversations")]
        return conversations, Page.from_api(data.get("pagination"))

    async def get_messages(
        self, conversation_id: str, page: int = 1, limit: int = 50
    ) -> tuple[list[ChatMessage], Page]:
        """Messages of a conversation, oldest first. System rows are skipped."""
        path = f"{CONVERSATIONS_PATH}/{conversation_id}"
        data = _unwrap_mapping(await self._client.get(path, {"page": page, "limit": limit}), path)
        roles = {r.value for r in Role}
        messages = [
            ChatMessage.from_api(row) for row in _rows(data, "messages") if row.get("role") in roles
        ]
        return messages, Page.from_api(data.get("pagination"))

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._client.delete(f"{CONVERSATIONS_PATH}/{conversation_id}")
        logger.info("conversation_deleted", conversation_id=conversation_id)

    async def get_usage(self) -> Usage:
        return Usage.from_api(_unwrap_mapping(await self._client.get(USAGE_PATH), USAGE_PATH))

    async def submit_feedback(self, message_id: str, rating: int, comment: Optional[str] = None) -> None:
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        if comment and len(comment) > MAX_FEEDBACK_COMMENT:
            raise ValidationError(f"Comment exceeds {MAX_FEEDBACK_COMMENT} characters")
        await self._client.post(
            FEEDBACK_PATH, {"messageId": message_id, "rating": rating, "comment": comment}
        )
