"""Data models for the chat subsystem."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


def new_message_id() -> str:
    return uuid.uuid4().hex[:12]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return _utcnow()


@dataclass
class ChatMessage:
    role: Role
    content: str = ""
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=_utcnow)
    is_streaming: bool = False
    is_error: bool = False

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> ChatMessage:
        """Build a persisted message from a conversation messages row."""
        return cls(
            role=Role(row["role"]),
            content=row.get("content") or "",
            id=str(row["id"]),
            timestamp=_parse_timestamp(row.get("created_at")),
        )


@dataclass
class Conversation:
    id: Optional[str] = None
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def streaming_message(self) -> Optional[ChatMessage]:
        for message in self.messages:
            if message.is_streaming:
                return message
        return None


@dataclass
class ConversationSummary:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> ConversationSummary:
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "Nouvelle conversation",
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at") or row.get("created_at")),
            message_count=int(row.get("message_count") or 0),
        )


@dataclass
class Page:
    page: int = 1
    limit: int = 20
    total: int = 0
    total_pages: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> Page:
        data = data if isinstance(data, dict) else {}
        return cls(
            page=int(data.get("page", 1)),
            limit=int(data.get("limit", 20)),
            total=int(data.get("total", 0)),
            total_pages=int(data.get("totalPages", 0)),
        )


@dataclass
class Usage:
    used: int
    remaining: int
    limit: int
    tier: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Usage:
        return cls(
            used=int(data.get("used") or 0),
            remaining=int(data.get("remaining") or 0),
            limit=int(data.get("limit") or 0),
            tier=str(data.get("tier") or "free"),
        )


@dataclass
class ChatReply:
    """Answer of the non-streaming chat endpoint."""

    message: str
    conversation_id: Optional[str]
    usage: Optional[Usage] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ChatReply:
        usage = data.get("usage")
        return cls(
            message=str(data.get("message") or ""),
            conversation_id=data.get("conversationId") or None,
            usage=Usage.from_api(usage) if isinstance(usage, dict) else None,
        )
