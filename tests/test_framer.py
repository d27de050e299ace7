"""Tests for event framing and the byte-to-event parser."""
from hypothesis import given
from hypothesis import strategies as st

from aideplus.stream.events import ContentFragment, ConversationAssigned
from aideplus.stream.framer import EventFramer
from aideplus.stream.reader import EventStreamParser, parse_events

from conftest import sse

BODY = sse(
    {"content": "Vous pouvez demander l'APL"},
    {"content": " à la CAF — en ligne ✓"},
    {"conversationId": "conv-7"},
    "[DONE]",
)


class TestEventFramer:
    def test_complete_lines(self):
        framer = EventFramer()
        assert framer.feed('data: {"a":1}\ndata: {"b":2}\n') == ['{"a":1}', '{"b":2}']

    def test_partial_line_is_carried_over(self):
        framer = EventFramer()
        assert framer.feed('data: {"con') == []
        assert framer.feed('tent":"x"}\n') == ['{"content":"x"}']

    def test_ignores_lines_without_prefix(self):
        framer = EventFramer()
        text = '\n: keep-alive\nevent: message\ndata:nospace\ndata: {"a":1}\n'
        assert framer.feed(text) == ['{"a":1}']

    def test_strips_carriage_return(self):
        framer = EventFramer()
        assert framer.feed('data: {"a":1}\r\n\r\n') == ['{"a":1}']

    def test_done_stops_framing(self):
        framer = EventFramer()
        assert framer.feed('data: {"a":1}\ndata: [DONE]\ndata: {"b":2}\n') == ['{"a":1}']
        assert framer.done
        assert framer.feed('data: {"c":3}\n') == []
        assert framer.close() == []

    def test_close_frames_unterminated_line(self):
        framer = EventFramer()
        assert framer.feed('data: {"a":1}') == []
        assert framer.close() == ['{"a":1}']


class TestParseEvents:
    def test_single_chunk(self):
        assert parse_events([BODY]) == [
            ContentFragment("Vous pouvez demander l'APL"),
            ContentFragment(" à la CAF — en ligne ✓"),
            ConversationAssigned("conv-7"),
        ]

    def test_every_two_chunk_split_yields_same_events(self):
        expected = parse_events([BODY])
        for offset in range(len(BODY) + 1):
            assert parse_events([BODY[:offset], BODY[offset:]]) == expected

    @given(st.lists(st.integers(min_value=0, max_value=len(BODY)), max_size=8))
    def test_arbitrary_chunking_yields_same_events(self, cuts):
        """Property: framing does not depend on where the network splits."""
        bounds = [0, *sorted(cuts), len(BODY)]
        chunks = [BODY[a:b] for a, b in zip(bounds, bounds[1:])]
        assert parse_events(chunks) == parse_events([BODY])

    def test_malformed_payload_is_skipped(self):
        body = b'data: {invalid json\ndata: {"content":"hello"}\n'
        assert parse_events([body]) == [ContentFragment("hello")]

    def test_non_object_payload_is_skipped(self):
        body = b'data: 42\ndata: "text"\ndata: {"content":"ok"}\n'
        assert parse_events([body]) == [ContentFragment("ok")]

    def test_records_after_done_are_not_interpreted(self):
        body = sse({"content": "a"}, "[DONE]", {"content": "b"})
        assert parse_events([body]) == [ContentFragment("a")]

    def test_parser_reports_done(self):
        parser = EventStreamParser()
        parser.feed(sse({"content": "a"}))
        assert not parser.done
        parser.feed(b"data: [DONE]\n")
        assert parser.done

    def test_body_without_trailing_newline(self):
        assert parse_events([b'data: {"content":"fin"}']) == [ContentFragment("fin")]
