"""Pytest configuration and shared fixtures."""
import json
from typing import Any, Callable

import httpx
import pytest

from aideplus.app import AidePlusApp
from aideplus.config import AppConfig
from aideplus.ui.base import ChatView

TOKEN = "test-token"


class RecordingView(ChatView):
    """Collects every view notification as (name, payload) tuples."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def payloads(self, name: str) -> list[Any]:
        return [payload for n, payload in self.calls if n == name]

    def message_added(self, message):
        self.calls.append(("added", message))

    def message_updated(self, message):
        self.calls.append(("updated", message.content))

    def message_removed(self, message):
        self.calls.append(("removed", message))

    def conversation_reset(self, messages):
        self.calls.append(("reset", list(messages)))

    def show_upgrade_prompt(self, signal):
        self.calls.append(("upgrade", signal))

    def show_toast(self, text):
        self.calls.append(("toast", text))

    def show_conversations(self, conversations):
        self.calls.append(("conversations", conversations))


def sse(*records: Any) -> bytes:
    """Encode records as ``data: `` lines; dicts become JSON."""
    lines = []
    for record in records:
        payload = record if isinstance(record, str) else json.dumps(record, ensure_ascii=False)
        lines.append(f"data: {payload}\n\n")
    return "".join(lines).encode("utf-8")


def stream_response(*chunks: bytes, status: int = 200) -> httpx.Response:
    """A response whose body is delivered chunk by chunk."""

    async def body():
        for chunk in chunks:
            yield chunk

    return httpx.Response(status, headers={"content-type": "text/event-stream"}, content=body())


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        api={"base_url": "http://aide.test"},
        auth={"access_token": TOKEN},
        chat={"welcome_message": "Bonjour !"},
    )


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def make_app(config, view) -> Callable[[Callable[[httpx.Request], httpx.Response]], AidePlusApp]:
    """Build an app whose HTTP traffic is answered by ``handler``."""

    def factory(handler):
        return AidePlusApp(config, view, transport=httpx.MockTransport(handler))

    return factory
