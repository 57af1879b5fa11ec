"""
Unit tests for the conversation event-stream parser and frame decoding.
"""

import pytest

from chatgpt_client import ConversationRequest, ConversationStreamParser, parse_conversation_frame, read_final_frame
from errors import MalformedResponse, StreamParseFailure, UpstreamError

from conftest import conversation_frame


async def _chunks(*chunks):
    for chunk in chunks:
        yield chunk


class TestStreamParser:
    def test_last_frame_before_done_wins(self):
        parser = ConversationStreamParser()
        frame_a = conversation_frame("A", message_id="ma")
        frame_b = conversation_frame("B", message_id="mb")
        for line in (f"data: {frame_a}", "", f"data: {frame_b}", "data: [DONE]"):
            parser.feed_line(line)

        assert parser.done
        assert parser.final_frame == frame_b
        assert parse_conversation_frame(parser.final_frame).text == "B"

    def test_lines_after_done_are_ignored(self):
        parser = ConversationStreamParser()
        parser.feed('data: {"x": 1}\ndata: [DONE]\ndata: {"x": 2}\n')
        assert parser.final_frame == '{"x": 1}'
        assert parser.frame_count == 1

    def test_chunks_split_mid_line(self):
        parser = ConversationStreamParser()
        parser.feed('data: {"a"')
        assert parser.final_frame is None
        parser.feed(': 1}\r\n\r\n')
        assert parser.final_frame == '{"a": 1}'

    def test_non_data_lines_skipped(self):
        parser = ConversationStreamParser()
        parser.feed('event: ping\n: comment\nid: 4\ndata: {"ok": true}\n')
        assert parser.frame_count == 1

    @pytest.mark.asyncio
    async def test_read_final_frame_flushes_unterminated_line(self):
        frame = await read_final_frame(_chunks('data: {"a": 1}\n\n', 'data: {"a": 2}'))
        assert frame == '{"a": 2}'

    @pytest.mark.asyncio
    async def test_read_final_frame_without_frames(self):
        assert await read_final_frame(_chunks("\n\n", "data: [DONE]\n")) is None


class TestFrameDecoding:
    def test_reply_fields(self):
        reply = parse_conversation_frame(conversation_frame("hi", message_id="m1", conversation_id="c1"))
        assert (reply.text, reply.message_id, reply.conversation_id) == ("hi", "m1", "c1")

    def test_missing_frame(self):
        with pytest.raises(StreamParseFailure):
            parse_conversation_frame(None)

    def test_invalid_json(self):
        with pytest.raises(StreamParseFailure):
            parse_conversation_frame("{not json")

    def test_empty_parts(self):
        with pytest.raises(MalformedResponse):
            parse_conversation_frame(conversation_frame(None))

    def test_error_field(self):
        with pytest.raises(UpstreamError) as excinfo:
            parse_conversation_frame(conversation_frame("partial", error="Too many requests"))
        assert excinfo.value.code == 200
        assert "Too many requests" in str(excinfo.value)


class TestConversationRequest:
    def test_first_message_omits_conversation_id(self):
        body = ConversationRequest.user_text("hello", message_id="u1", parent_message_id="p1").to_dict()
        assert body == {
            "action": "next",
            "messages": [
                {"id": "u1", "role": "user", "content": {"content_type": "text", "parts": ["hello"]}},
            ],
            "parent_message_id": "p1",
            "model": "text-davinci-002-render",
        }

    def test_follow_up_carries_conversation_id(self):
        body = ConversationRequest.user_text("again", "u2", "m1", conversation_id="c1").to_dict()
        assert body["conversation_id"] == "c1"
        assert body["parent_message_id"] == "m1"
