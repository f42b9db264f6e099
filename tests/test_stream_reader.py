"""Tests for SSE line buffering and delta extraction."""

from __future__ import annotations

import json

import pytest

from streamchat.llm.errors import MalformedEventError
from streamchat.llm.stream_reader import (
    LineBuffer,
    StreamTokenReader,
    decode_event,
    extract_delta,
)


def _event(text: str) -> str:
    payload = {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}
    return f"data: {json.dumps(payload)}\r\n\r\n"


async def _chunks(*chunks: bytes):
    for chunk in chunks:
        yield chunk


async def _collect(reader: StreamTokenReader) -> list[str]:
    return [delta async for delta in reader]


class TestDecodeEvent:
    def test_extracts_text(self):
        assert decode_event(_event("Hello").strip()) == "Hello"

    def test_non_event_lines_are_ignored(self):
        assert decode_event("") is None
        assert decode_event(": keep-alive") is None
        assert decode_event("event: message") is None

    def test_done_sentinel(self):
        assert decode_event("data: [DONE]") is None

    def test_invalid_json_raises(self):
        with pytest.raises(MalformedEventError):
            decode_event('data: {"candidates": [')

    def test_wrong_shape_raises(self):
        with pytest.raises(MalformedEventError):
            decode_event('data: ["not", "an", "object"]')

    def test_record_without_text(self):
        assert decode_event('data: {"candidates": []}') == ""
        assert decode_event('data: {"usageMetadata": {"totalTokenCount": 3}}') == ""

    def test_multiple_parts_are_joined(self):
        record = {"candidates": [{"content": {"parts": [
            {"text": "a"}, {"inline_data": {}}, {"text": "b"},
        ]}}]}
        assert extract_delta(record) == "ab"


class TestLineBuffer:
    def test_lines_split_across_chunks(self):
        buf = LineBuffer()
        assert list(buf.feed(b"data: one\nda")) == ["data: one"]
        assert list(buf.feed(b"ta: two\r\n")) == ["data: two"]
        assert list(buf.finish()) == []

    def test_multibyte_character_split(self):
        encoded = "data: café\n".encode()
        cut = encoded.index(b"\xc3") + 1
        buf = LineBuffer()
        assert list(buf.feed(encoded[:cut])) == []
        assert list(buf.feed(encoded[cut:])) == ["data: café"]

    def test_finish_flushes_unterminated_line(self):
        buf = LineBuffer()
        assert list(buf.feed(b"data: tail")) == []
        assert list(buf.finish()) == ["data: tail"]


class TestStreamTokenReader:
    async def test_yields_deltas_in_order(self):
        body = (_event("Hel") + _event("lo") + _event(" world")).encode()
        reader = StreamTokenReader(_chunks(body[:10], body[10:37], body[37:]))
        assert await _collect(reader) == ["Hel", "lo", " world"]

    async def test_malformed_event_is_skipped(self):
        body = (_event("a") + "data: {broken\n\n" + _event("b")).encode()
        reader = StreamTokenReader(_chunks(body))
        assert await _collect(reader) == ["a", "b"]
        assert reader.skipped_events == 1

    async def test_done_and_empty_records_yield_nothing(self):
        body = (_event("x") + 'data: {"candidates": []}\n\n' + "data: [DONE]\n\n").encode()
        assert await _collect(StreamTokenReader(_chunks(body))) == ["x"]

    async def test_last_line_without_newline(self):
        body = _event("end").rstrip().encode()
        assert await _collect(StreamTokenReader(_chunks(body))) == ["end"]

    async def test_empty_stream(self):
        assert await _collect(StreamTokenReader(_chunks())) == []

    async def test_single_use(self):
        reader = StreamTokenReader(_chunks(_event("once").encode()))
        await _collect(reader)
        with pytest.raises(RuntimeError):
            await _collect(reader)
