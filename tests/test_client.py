"""Tests for GenerativeClient request shapes with a mocked transport."""

from __future__ import annotations

import json

import httpx
import pytest

from streamchat.config import ChatConfig, GenerationSpec
from streamchat.llm.client import GenerativeClient, build_body
from streamchat.llm.errors import APIStatusError
from streamchat.types import ConversationTurn, InlineDataPart, Role, TextPart


@pytest.fixture
def config() -> ChatConfig:
    return ChatConfig(
        api_key="test-key",
        model="chat-model",
        base_url="http://test/v1beta",
        system_instruction="Be brief.",
    )


def _turn(text: str, role: Role = Role.USER) -> ConversationTurn:
    return ConversationTurn(role=role, parts=(TextPart(text),))


def _sse(*texts: str) -> bytes:
    events = [
        "data: " + json.dumps({"candidates": [{"content": {"parts": [{"text": t}]}}]})
        for t in texts
    ]
    return ("\r\n\r\n".join(events) + "\r\n\r\n").encode()


class TestBuildBody:
    def test_full_body(self):
        turns = [
            _turn("hi"),
            _turn("hello", Role.MODEL),
            ConversationTurn(
                role=Role.USER,
                parts=(TextPart("look"), InlineDataPart("image/jpeg", "AAAA")),
            ),
        ]
        body = build_body(turns, GenerationSpec(), "Be brief.")
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
        assert body["contents"][2]["parts"] == [
            {"text": "look"},
            {"inline_data": {"mime_type": "image/jpeg", "data": "AAAA"}},
        ]
        assert body["generationConfig"] == {
            "temperature": 1.0,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 8192,
        }
        assert body["system_instruction"] == {"parts": [{"text": "Be brief."}]}

    def test_blank_system_instruction_is_omitted(self):
        body = build_body([_turn("hi")], GenerationSpec(), "   ")
        assert "system_instruction" not in body

    def test_generation_is_optional(self):
        assert "generationConfig" not in build_body([_turn("hi")])


class TestStream:
    async def test_stream_request_and_deltas(self, config: ChatConfig):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=_sse("Hi", " there"))

        client = GenerativeClient(config, transport=httpx.MockTransport(handler))
        async with client.stream([_turn("hello")]) as reader:
            deltas = [d async for d in reader]
        await client.close()

        assert deltas == ["Hi", " there"]
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v1beta/models/chat-model:streamGenerateContent"
        assert request.url.params["alt"] == "sse"
        assert request.url.params["key"] == "test-key"
        body = json.loads(request.content)
        assert body["contents"][0]["parts"] == [{"text": "hello"}]
        assert body["system_instruction"]["parts"][0]["text"] == "Be brief."

    async def test_stream_model_override(self, config: ChatConfig):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=_sse("ok"))

        client = GenerativeClient(config, transport=httpx.MockTransport(handler))
        async with client.stream([_turn("hi")], model="other-model") as reader:
            [d async for d in reader]
        await client.close()
        assert seen[0].url.path.endswith("/models/other-model:streamGenerateContent")

    async def test_error_status_raises(self, config: ChatConfig):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": {"message": "denied"}})

        client = GenerativeClient(config, transport=httpx.MockTransport(handler))
        with pytest.raises(APIStatusError) as info:
            async with client.stream([_turn("hi")]):
                pytest.fail("body must not be read on error")
        await client.close()
        assert info.value.status_code == 403
        assert "denied" in info.value.body


class TestGenerate:
    async def test_one_shot_request(self, config: ChatConfig):
        seen: list[httpx.Request] = []
        answer = {"candidates": [{"content": {"parts": [{"text": "transcript"}]}}]}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=answer)

        client = GenerativeClient(config, transport=httpx.MockTransport(handler))
        data = await client.generate([_turn("hi")], model="dictation-model")
        await client.close()

        assert data == answer
        assert seen[0].url.path == "/v1beta/models/dictation-model:generateContent"
        assert "alt" not in seen[0].url.params
        body = json.loads(seen[0].content)
        assert "generationConfig" not in body
        assert "system_instruction" not in body

    async def test_one_shot_error(self, config: ChatConfig):
        client = GenerativeClient(
            config,
            transport=httpx.MockTransport(lambda r: httpx.Response(400, text="bad")),
        )
        with pytest.raises(APIStatusError) as info:
            await client.generate([_turn("hi")])
        await client.close()
        assert info.value.status_code == 400
