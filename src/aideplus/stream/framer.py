"""Line framing of ``data: `` records in an event-stream body."""

from __future__ import annotations

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class EventFramer:
    """Split decoded text into ``data: `` payloads.

    Text arrives in arbitrary pieces, so the last partial line of every
    ``feed`` is carried over until its newline shows up. Lines without the
    prefix (keep-alive blanks, ``:`` comments, ``event:`` fields) are dropped.
    Once the ``[DONE]`` sentinel is seen the framer stops producing payloads.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self.done = False

    def feed(self, text: str) -> list[str]:
        if self.done:
            return []
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._frame(lines)

    def close(self) -> list[str]:
        """Frame the trailing line of a body that did not end with a newline."""
        if self.done or not self._buffer:
            self._buffer = ""
            return []
        tail, self._buffer = self._buffer, ""
        return self._frame([tail])

    def _frame(self, lines: list[str]) -> list[str]:
        payloads: list[str] = []
        for line in lines:
            if line.endswith("\r"):
                line = line[:-1]
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):]
            if payload == DONE_SENTINEL:
                self.done = True
                self._buffer = ""
                break
            payloads.append(payload)
        return payloads
