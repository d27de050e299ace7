"""Chat controller: user input -> stream request -> events -> state -> view."""

from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterable, AsyncIterator, Optional

from aideplus.api.chat import ChatApi
from aideplus.chat.models import Conversation, ConversationSummary
from aideplus.chat.state import ChatPhase, ChatSession
from aideplus.config import ChatConfig
from aideplus.errors import AuthError, NetworkError, ValidationError
from aideplus.log import get_logger
from aideplus.stream.events import ContentFragment, ConversationAssigned, RateLimited
from aideplus.stream.reader import iter_events
from aideplus.ui.base import ChatView

logger = get_logger(__name__)


class ChatController:
    """Runs chat turns against the API and keeps the view in sync.

    Every failure of a turn ends up as session state plus a view update;
    nothing raised by the transport or the stream escapes ``send``.
    Starting a new chat or opening another conversation while a reply is
    streaming abandons that reply: its remaining events are ignored.
    """

    def __init__(self, chat_api: ChatApi, view: ChatView, config: ChatConfig):
        self._api = chat_api
        self._view = view
        self._config = config
        self.session = ChatSession(config.welcome_message)
        self.conversations: list[ConversationSummary] = []
        self._generation = 0

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def send(self, text: str, context: Optional[dict[str, str]] = None) -> Optional[ChatPhase]:
        """Send one message and consume the streamed reply.

        Returns the outcome of the turn, or None when nothing was sent (blank
        input) or the turn was abandoned.

        Raises:
            ChatStateError: a reply is already in progress.
        """
        text = text.strip()
        if not text:
            return None

        generation = self._generation
        user_message = self.session.begin_send(text)
        self._view.message_added(user_message)

        try:
            async with self._api.open_stream(text, self.session.conversation_id, context) as chunks:
                async with aclosing(iter_events(self._mark_started(chunks, generation))) as events:
                    async for event in events:
                        if not self._is_current(generation):
                            logger.info("stale_stream_dropped")
                            return None
                        match event:
                            case ContentFragment(text=fragment):
                                self._view.message_updated(self.session.append_content(fragment))
                            case ConversationAssigned(conversation_id=conversation_id):
                                self.session.assign_conversation(conversation_id)
                            case RateLimited(signal=signal):
                                removed = self.session.rate_limited(signal)
                                if removed is not None:
                                    self._view.message_removed(removed)
                                self._view.show_upgrade_prompt(signal)
                                return ChatPhase.RATE_LIMITED
        except AuthError as e:
            if not self._is_current(generation):
                return None
            logger.warning("chat_send_unauthenticated", error=str(e))
            self.session.cancel_send()
            self._view.message_removed(user_message)
            self._view.show_toast(self._config.send_failed_message)
            return ChatPhase.ERRORED
        except ValidationError as e:
            if not self._is_current(generation):
                return None
            self.session.cancel_send()
            self._view.message_removed(user_message)
            self._view.show_toast(str(e))
            return ChatPhase.ERRORED
        except NetworkError as e:
            if not self._is_current(generation):
                return None
            logger.error("chat_stream_failed", error=str(e))
            had_placeholder = self.session.placeholder is not None
            message = self.session.fail(self._config.error_message)
            if had_placeholder:
                self._view.message_updated(message)
            else:
                self._view.message_added(message)
            return ChatPhase.ERRORED

        if not self._is_current(generation):
            return None
        placeholder = self.session.placeholder
        adopted = self.session.complete()
        if placeholder is not None:
            self._view.message_updated(placeholder)
        if adopted:
            await self._refresh_conversations()
        return ChatPhase.COMPLETED

    async def _mark_started(
        self, chunks: AsyncIterable[bytes], generation: int
    ) -> AsyncIterator[bytes]:
        """Insert the assistant placeholder when the first bytes arrive."""
        started = False
        async for chunk in chunks:
            if not started and chunk and self._is_current(generation):
                started = True
                self._view.message_added(self.session.start_streaming())
            yield chunk

    async def _refresh_conversations(self) -> None:
        try:
            await self.load_conversations()
        except NetworkError as e:
            logger.warning("conversation_refresh_failed", error=str(e))
            self._view.show_toast("Impossible de rafraîchir l'historique.")

    async def load_conversations(self, page: int = 1, limit: int = 20) -> list[ConversationSummary]:
        self.conversations, _ = await self._api.list_conversations(page, limit)
        self._view.show_conversations(self.conversations)
        return self.conversations

    def start_new_chat(self) -> None:
        self._generation += 1
        self.session.reset()
        self._view.conversation_reset(self.session.messages)

    async def open_conversation(self, conversation_id: str) -> Conversation:
        """Replace the current chat with a conversation loaded from the server."""
        messages, _ = await self._api.get_messages(
            conversation_id, limit=self._config.history_page_size
        )
        self._generation += 1
        self.session.reset(Conversation(id=conversation_id, messages=messages))
        self._view.conversation_reset(self.session.messages)
        logger.info("conversation_opened", conversation_id=conversation_id, messages=len(messages))
        return self.session.conversation

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._api.delete_conversation(conversation_id)
        if self.session.conversation_id == conversation_id:
            self.start_new_chat()
        await self._refresh_conversations()

    async def submit_feedback(self, message_id: str, rating: int, comment: Optional[str] = None) -> None:
        await self._api.submit_feedback(message_id, rating, comment)
        self._view.show_toast("Merci pour votre retour !")
