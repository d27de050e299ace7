"""Typed stream events, resolved once from the raw JSON payload."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from aideplus.errors import StreamParseError

LIMIT_EXCEEDED = "limit_exceeded"


@dataclass(frozen=True, slots=True)
class UpgradeSignal:
    """Quota usage at the moment the server refused to continue."""

    current: int
    limit: int
    tier: str
    feature: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ContentFragment:
    text: str


@dataclass(frozen=True, slots=True)
class ConversationAssigned:
    conversation_id: str


@dataclass(frozen=True, slots=True)
class RateLimited:
    signal: UpgradeSignal


StreamEvent = Union[ContentFragment, ConversationAssigned, RateLimited]


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def interpret(payload: str) -> StreamEvent | None:
    """Classify one ``data: `` payload.

    A rate-limit error wins over content, and content wins over a
    conversation id. Returns None for objects carrying none of them.

    Raises:
        StreamParseError: the payload is not a JSON object.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise StreamParseError(f"invalid JSON payload: {e.msg}") from e
    if not isinstance(data, dict):
        raise StreamParseError(f"expected a JSON object, got {type(data).__name__}")

    if data.get("error") == LIMIT_EXCEEDED:
        return RateLimited(
            UpgradeSignal(
                current=_as_int(data.get("current")),
                limit=_as_int(data.get("limit")),
                tier=str(data.get("tier") or ""),
                feature=data.get("feature"),
                message=data.get("message"),
            )
        )

    content = data.get("content")
    if isinstance(content, str):
        return ContentFragment(content)

    conversation_id = data.get("conversationId")
    if conversation_id is not None and str(conversation_id):
        return ConversationAssigned(str(conversation_id))

    return None
