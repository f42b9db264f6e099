"""Decoding of server-sent event streams into text deltas.

The backend frames its streamed answer as lines of the form::

    data: {"candidates": [{"content": {"parts": [{"text": "Hel"}]}}]}

separated by blank lines.  Only ``data: `` lines are looked at; a
``[DONE]`` payload is ignored, and an undecodable payload is logged and
skipped so one bad event never ends the stream.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, AsyncIterator, Generator

from .errors import MalformedEventError

_logger = logging.getLogger(__name__)

EVENT_MARKER = "data: "
DONE_SENTINEL = "[DONE]"


def extract_delta(record: Any) -> str:
    """Return the text carried at ``candidates[0].content.parts[*].text``."""
    if not isinstance(record, dict):
        raise TypeError("event payload is not an object")
    candidates = record.get("candidates") or []
    if not candidates:
        return ""
    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    return "".join(
        p["text"] for p in parts
        if isinstance(p, dict) and isinstance(p.get("text"), str)
    )


def decode_event(line: str) -> str | None:
    """Decode one stream line.

    Returns the text delta, or ``None`` for lines that carry no event
    (other fields, comments, the ``[DONE]`` sentinel).  Raises
    ``MalformedEventError`` when the payload cannot be decoded.
    """
    if not line.startswith(EVENT_MARKER):
        return None
    payload = line[len(EVENT_MARKER):].strip()
    if not payload or payload == DONE_SENTINEL:
        return None
    try:
        return extract_delta(json.loads(payload))
    except json.JSONDecodeError as e:
        raise MalformedEventError(line, "invalid JSON") from e
    except (AttributeError, KeyError, TypeError) as e:
        raise MalformedEventError(line, "unexpected shape") from e


class LineBuffer:
    """Turn arbitrary byte chunks into complete text lines.

    Decoding is incremental, so a multi-byte character split across two
    chunks comes out whole.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> Generator[str, None, None]:
        """Feed a chunk.  Yields every line completed by it."""
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            yield line.removesuffix("\r")

    def finish(self) -> Generator[str, None, None]:
        """Call at end of data.  Yields the unterminated last line, if any."""
        self._pending += self._decoder.decode(b"", final=True)
        tail, self._pending = self._pending, ""
        if tail:
            yield tail.removesuffix("\r")


class StreamTokenReader:
    """Lazy, single-use sequence of text deltas over a byte stream.

    Parameters
    ----------
    chunks:
        The raw body, e.g. ``response.aiter_bytes()``.
    """

    def __init__(self, chunks: AsyncIterator[bytes]) -> None:
        self._chunks = chunks
        self._started = False
        self.skipped_events = 0

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("StreamTokenReader can only be iterated once")
        self._started = True
        return self._deltas()

    async def _deltas(self) -> AsyncIterator[str]:
        lines = LineBuffer()
        async for chunk in self._chunks:
            for line in lines.feed(chunk):
                delta = self._decode(line)
                if delta:
                    yield delta
        for line in lines.finish():
            delta = self._decode(line)
            if delta:
                yield delta

    def _decode(self, line: str) -> str | None:
        try:
            return decode_event(line)
        except MalformedEventError as e:
            self.skipped_events += 1
            _logger.warning("Skipping stream event: %s", e)
            return None
