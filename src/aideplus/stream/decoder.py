"""Incremental UTF-8 decoding of response body chunks."""

from __future__ import annotations

import codecs


class Utf8StreamDecoder:
    """Decode a byte stream chunk by chunk.

    An incomplete multi-byte sequence at the end of a chunk is held back and
    completed by the next call, so a character split across two network
    reads comes out whole. Invalid bytes decode to U+FFFD rather than raise.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def decode(self, chunk: bytes) -> str:
        return self._decoder.decode(chunk, final=False)

    def flush(self) -> str:
        """Emit whatever is still buffered once the stream has ended."""
        return self._decoder.decode(b"", final=True)
