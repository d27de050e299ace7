"""Chat turn state machine over the in-memory conversation."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from aideplus.chat.models import ChatMessage, Conversation, Role
from aideplus.errors import ChatStateError
from aideplus.log import get_logger
from aideplus.stream.events import UpgradeSignal

logger = get_logger(__name__)


class ChatPhase(StrEnum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    RATE_LIMITED = "rate_limited"


class ChatSession:
    """Owns the message list and applies one turn at a time.

    Phases move ``IDLE -> SENDING -> STREAMING`` and end in one of
    ``COMPLETED``, ``ERRORED`` or ``RATE_LIMITED``. The ending is kept in
    ``last_outcome`` and the session is back in ``IDLE`` right away, so the
    next message can be sent immediately. Only one turn may be in flight.
    """

    def __init__(self, welcome_message: str = ""):
        self._welcome_message = welcome_message
        self.conversation = self._fresh_conversation()
        self.phase = ChatPhase.IDLE
        self.last_outcome: Optional[ChatPhase] = None
        self._user_message: Optional[ChatMessage] = None
        self._placeholder: Optional[ChatMessage] = None
        self._accumulated = ""
        self._pending_conversation_id: Optional[str] = None

    def _fresh_conversation(self) -> Conversation:
        conversation = Conversation()
        if self._welcome_message:
            conversation.messages.append(
                ChatMessage(role=Role.ASSISTANT, content=self._welcome_message)
            )
        return conversation

    @property
    def messages(self) -> list[ChatMessage]:
        return self.conversation.messages

    @property
    def conversation_id(self) -> Optional[str]:
        return self.conversation.id

    @property
    def is_busy(self) -> bool:
        return self.phase in (ChatPhase.SENDING, ChatPhase.STREAMING)

    @property
    def placeholder(self) -> Optional[ChatMessage]:
        return self._placeholder

    def _require(self, *phases: ChatPhase) -> None:
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise ChatStateError(f"Cannot do this while {self.phase.value} (expected {allowed})")

    def _finish(self, outcome: ChatPhase) -> None:
        self.last_outcome = outcome
        self.phase = ChatPhase.IDLE
        self._user_message = None
        self._placeholder = None
        self._accumulated = ""
        self._pending_conversation_id = None

    def begin_send(self, text: str) -> ChatMessage:
        """Append the user's message and enter SENDING."""
        if self.is_busy:
            raise ChatStateError("A reply is already in progress")
        text = text.strip()
        if not text:
            raise ChatStateError("Cannot send an empty message")
        message = ChatMessage(role=Role.USER, content=text)
        self.conversation.messages.append(message)
        self._user_message = message
        self.phase = ChatPhase.SENDING
        return message

    def cancel_send(self) -> None:
        """Undo a send that never reached the server."""
        self._require(ChatPhase.SENDING)
        if self._user_message in self.conversation.messages:
            self.conversation.messages.remove(self._user_message)
        self._finish(ChatPhase.ERRORED)

    def start_streaming(self) -> ChatMessage:
        """Insert the empty assistant placeholder once the reply starts."""
        self._require(ChatPhase.SENDING)
        self._placeholder = ChatMessage(role=Role.ASSISTANT, is_streaming=True)
        self.conversation.messages.append(self._placeholder)
        self.phase = ChatPhase.STREAMING
        return self._placeholder

    def append_content(self, fragment: str) -> ChatMessage:
        self._require(ChatPhase.STREAMING)
        self._accumulated += fragment
        self._placeholder.content = self._accumulated
        return self._placeholder

    def assign_conversation(self, conversation_id: str) -> None:
        self._require(ChatPhase.STREAMING)
        self._pending_conversation_id = conversation_id

    def complete(self) -> bool:
        """Finalize the reply. Returns True if a new conversation id was adopted."""
        self._require(ChatPhase.SENDING, ChatPhase.STREAMING)
        if self._placeholder is not None:
            self._placeholder.is_streaming = False
        adopted = False
        pending = self._pending_conversation_id
        if pending and self.conversation.id is None:
            self.conversation.id = pending
            adopted = True
            logger.info("conversation_adopted", conversation_id=pending)
        elif pending and pending != self.conversation.id:
            logger.warning(
                "conversation_id_ignored", current=self.conversation.id, received=pending
            )
        self._finish(ChatPhase.COMPLETED)
        return adopted

    def rate_limited(self, signal: UpgradeSignal) -> Optional[ChatMessage]:
        """Drop the in-progress reply. Returns the removed placeholder, if any."""
        self._require(ChatPhase.SENDING, ChatPhase.STREAMING)
        removed = self._placeholder
        if removed is not None and removed in self.conversation.messages:
            self.conversation.messages.remove(removed)
        logger.info(
            "chat_rate_limited", current=signal.current, limit=signal.limit, tier=signal.tier
        )
        self._finish(ChatPhase.RATE_LIMITED)
        return removed

    def fail(self, error_text: str) -> ChatMessage:
        """Turn the reply into an error bubble, adding one if nothing arrived yet."""
        self._require(ChatPhase.SENDING, ChatPhase.STREAMING)
        message = self._placeholder
        if message is None:
            message = ChatMessage(role=Role.ASSISTANT)
            self.conversation.messages.append(message)
        message.content = error_text
        message.is_error = True
        message.is_streaming = False
        self._finish(ChatPhase.ERRORED)
        return message

    def reset(self, conversation: Optional[Conversation] = None) -> None:
        """Start over with a new (or loaded) conversation, abandoning any turn."""
        if self.is_busy:
            logger.info("chat_turn_abandoned", phase=self.phase.value)
        self.conversation = conversation if conversation is not None else self._fresh_conversation()
        self.phase = ChatPhase.IDLE
        self.last_outcome = None
        self._user_message = None
        self._placeholder = None
        self._accumulated = ""
        self._pending_conversation_id = None
