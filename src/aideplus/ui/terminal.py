"""Plain-text chat view for the command line."""

from __future__ import annotations

import sys
from typing import TextIO

from aideplus.chat.models import ChatMessage, ConversationSummary, Role
from aideplus.stream.events import UpgradeSignal
from aideplus.ui.base import ChatView

_LABELS = {Role.USER: "Vous", Role.ASSISTANT: "AIDE+"}


class TerminalView(ChatView):
    """Prints the transcript, writing streamed replies as they grow."""

    def __init__(self, out: TextIO | None = None, echo_user: bool = False):
        self._out = out or sys.stdout
        self._echo_user = echo_user
        self._printed: dict[str, int] = {}

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def _print_message(self, message: ChatMessage) -> None:
        marker = " [erreur]" if message.is_error else ""
        self._write(f"{_LABELS[message.role]}{marker}> {message.content}")
        self._printed[message.id] = len(message.content)
        if not message.is_streaming:
            self._write("\n")

    def message_added(self, message: ChatMessage) -> None:
        if message.role is Role.USER and not self._echo_user:
            return
        self._print_message(message)

    def message_updated(self, message: ChatMessage) -> None:
        printed = self._printed.get(message.id)
        if printed is None:
            self._print_message(message)
            return
        if message.is_error:
            self._write("\n")
            self._print_message(message)
            return
        self._write(message.content[printed:])
        self._printed[message.id] = len(message.content)
        if not message.is_streaming:
            self._write("\n")

    def message_removed(self, message: ChatMessage) -> None:
        if self._printed.pop(message.id, None) is not None:
            self._write("\n(réponse interrompue)\n")

    def conversation_reset(self, messages: list[ChatMessage]) -> None:
        self._printed.clear()
        for message in messages:
            self._print_message(message)

    def show_upgrade_prompt(self, signal: UpgradeSignal) -> None:
        lines = [
            "",
            "*** Limite atteinte ***",
            signal.message or f"Vous avez utilisé {signal.current}/{signal.limit} messages.",
            f"Abonnement actuel : {signal.tier or 'inconnu'}. Passez à une offre supérieure pour continuer.",
            "",
        ]
        self._write("\n".join(lines))

    def show_toast(self, text: str) -> None:
        self._write(f"! {text}\n")

    def show_conversations(self, conversations: list[ConversationSummary]) -> None:
        if not conversations:
            self._write("Aucune conversation.\n")
            return
        for conv in conversations:
            self._write(
                f"  {conv.id}  {conv.updated_at:%Y-%m-%d}  {conv.title} ({conv.message_count} messages)\n"
            )
