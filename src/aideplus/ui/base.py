"""Abstract chat view interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from aideplus.chat.models import ChatMessage, ConversationSummary
from aideplus.stream.events import UpgradeSignal


class ChatView(ABC):
    """Front-end notified by the chat controller.

    To render the chat somewhere new, subclass this and implement all
    abstract methods. Calls happen on the event loop, one at a time.
    """

    @abstractmethod
    def message_added(self, message: ChatMessage) -> None:
        """A message was appended to the conversation."""
        ...

    @abstractmethod
    def message_updated(self, message: ChatMessage) -> None:
        """Content or flags of a displayed message changed."""
        ...

    @abstractmethod
    def message_removed(self, message: ChatMessage) -> None:
        ...

    @abstractmethod
    def conversation_reset(self, messages: list[ChatMessage]) -> None:
        """The whole message list was replaced (new chat or loaded history)."""
        ...

    @abstractmethod
    def show_upgrade_prompt(self, signal: UpgradeSignal) -> None:
        ...

    @abstractmethod
    def show_toast(self, text: str) -> None:
        ...

    @abstractmethod
    def show_conversations(self, conversations: list[ConversationSummary]) -> None:
        ...
