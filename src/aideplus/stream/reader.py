"""Turn a chat response body into a sequence of typed events."""

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Iterable

from aideplus.errors import StreamParseError
from aideplus.log import get_logger
from aideplus.stream.decoder import Utf8StreamDecoder
from aideplus.stream.events import StreamEvent, interpret
from aideplus.stream.framer import EventFramer

logger = get_logger(__name__)


class EventStreamParser:
    """Decoder, framer and interpreter chained over raw byte chunks.

    Payloads that fail to parse are skipped: a record cut at a chunk boundary
    or a garbled line must never end the stream.
    """

    def __init__(self) -> None:
        self._decoder = Utf8StreamDecoder()
        self._framer = EventFramer()

    @property
    def done(self) -> bool:
        """True once the ``[DONE]`` sentinel has been framed."""
        return self._framer.done

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        return self._interpret_all(self._framer.feed(self._decoder.decode(chunk)))

    def close(self) -> list[StreamEvent]:
        payloads = self._framer.feed(self._decoder.flush())
        payloads.extend(self._framer.close())
        return self._interpret_all(payloads)

    def _interpret_all(self, payloads: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for payload in payloads:
            try:
                event = interpret(payload)
            except StreamParseError as e:
                logger.debug("stream_payload_skipped", reason=str(e), size=len(payload))
                continue
            if event is not None:
                events.append(event)
        return events


def parse_events(chunks: Iterable[bytes]) -> list[StreamEvent]:
    """Parse a fully buffered body, given as any split of its bytes."""
    parser = EventStreamParser()
    events: list[StreamEvent] = []
    for chunk in chunks:
        events.extend(parser.feed(chunk))
        if parser.done:
            return events
    events.extend(parser.close())
    return events


async def iter_events(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """Yield events as their records complete, stopping at ``[DONE]``.

    The caller may stop iterating at any point (e.g. on a rate-limit event);
    no further chunks are pulled after that.
    """
    parser = EventStreamParser()
    async for chunk in chunks:
        for event in parser.feed(chunk):
            yield event
        if parser.done:
            return
    for event in parser.close():
        yield event
