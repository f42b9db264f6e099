"""Async client for the Gemini ``generateContent`` family of endpoints.

Streaming requests go to ``:streamGenerateContent?alt=sse`` and are read
through a ``StreamTokenReader``; one-shot requests (dictation) go to
``:generateContent``.  Both are sent through the ``BackoffExecutor``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence

import httpx

from streamchat.config import ChatConfig, GenerationSpec
from streamchat.types import ConversationTurn

from .backoff import BackoffExecutor
from .errors import APIStatusError
from .stream_reader import StreamTokenReader

_logger = logging.getLogger(__name__)


def build_body(
    contents: Sequence[ConversationTurn],
    generation: GenerationSpec | None = None,
    system_instruction: str = "",
) -> dict[str, Any]:
    """Build the JSON request body for a list of turns."""
    body: dict[str, Any] = {
        "contents": [turn.to_payload() for turn in contents],
    }
    if generation is not None:
        body["generationConfig"] = generation.to_payload()
    if system_instruction.strip():
        body["system_instruction"] = {"parts": [{"text": system_instruction}]}
    return body


class GenerativeClient:
    """Async client bound to one API key and base URL.

    Parameters
    ----------
    config:
        Connection settings, credentials and sampling parameters.
    transport:
        Optional ``httpx`` transport (tests pass an ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: ChatConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/") + "/",
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(
                config.read_timeout, connect=config.connect_timeout,
            ),
            transport=transport,
        )
        self._executor = BackoffExecutor(self._client, config.max_attempts)

    def _request(
        self, method: str, params: dict[str, str], body: dict[str, Any],
    ) -> httpx.Request:
        return self._client.build_request(
            "POST",
            method,
            params={**params, "key": self.config.api_key},
            json=body,
        )

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def stream(
        self,
        contents: Sequence[ConversationTurn],
        model: str | None = None,
    ) -> AsyncIterator[StreamTokenReader]:
        """Open a streaming completion and yield a reader over its deltas.

        Raises ``APIStatusError`` when the final response is not a success.
        """
        model = model or self.config.model
        body = build_body(
            contents, self.config.generation, self.config.system_instruction,
        )
        request = self._request(
            f"models/{model}:streamGenerateContent", {"alt": "sse"}, body,
        )
        _logger.debug("Streaming %d turns to %s", len(contents), model)

        response = await self._executor.execute(request, stream=True)
        try:
            if not response.is_success:
                await response.aread()
                raise APIStatusError(response.status_code, response.text)
            yield StreamTokenReader(response.aiter_bytes())
        finally:
            await response.aclose()

    # ------------------------------------------------------------------
    # One-shot
    # ------------------------------------------------------------------

    async def generate(
        self,
        contents: Sequence[ConversationTurn],
        model: str | None = None,
    ) -> dict[str, Any]:
        """Send a non-streaming request and return the decoded JSON."""
        model = model or self.config.model
        request = self._request(
            f"models/{model}:generateContent", {}, build_body(contents),
        )
        response = await self._executor.execute(request)
        if not response.is_success:
            raise APIStatusError(response.status_code, response.text)
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
