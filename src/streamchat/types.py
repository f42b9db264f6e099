"""Shared data types for streamchat."""

from __future__ import annotations

import enum
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Union

_ids = itertools.count(1)


def _next_id(suffix: str) -> str:
    return f"{time.time_ns()}-{next(_ids)}-{suffix}"


class Role(str, enum.Enum):
    """Author of a message or conversation turn."""

    USER = "user"
    MODEL = "model"


# ---------------------------------------------------------------------------
# Conversation history (wire-level turns)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextPart:
    """Plain text content of a turn."""

    text: str

    def to_payload(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class InlineDataPart:
    """Binary content (image or audio) carried as base64 text."""

    mime_type: str
    data: str

    def to_payload(self) -> dict[str, Any]:
        return {"inline_data": {"mime_type": self.mime_type, "data": self.data}}


Part = Union[TextPart, InlineDataPart]


@dataclass(frozen=True)
class ConversationTurn:
    """One role-tagged entry of the conversation history.

    Turns are never mutated after they are appended to a history.
    """

    role: Role
    parts: tuple[Part, ...]

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    def to_payload(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "parts": [p.to_payload() for p in self.parts],
        }


# ---------------------------------------------------------------------------
# Visible messages
# ---------------------------------------------------------------------------

class Message:
    """A message shown in the chat list.

    While ``is_streaming`` is set the text only ever grows through
    :meth:`append`.  After :meth:`finalize` or :meth:`fail` it is frozen.
    Text and status flags are read-only from outside.
    """

    def __init__(
        self,
        role: Role,
        text: str = "",
        images: tuple[str, ...] = (),
        is_streaming: bool = False,
        is_error: bool = False,
        id: str = "",
    ) -> None:
        self.role = role
        self.images = images
        self.id = id or _next_id(role.value)
        self._text = text
        self._is_streaming = is_streaming
        self._is_error = is_error

    def __repr__(self) -> str:
        return (
            f"Message(id={self.id!r}, role={self.role.value}, "
            f"streaming={self._is_streaming}, error={self._is_error}, "
            f"text={self._text[:40]!r})"
        )

    @property
    def text(self) -> str:
        return self._text

    @property
    def is_streaming(self) -> bool:
        return self._is_streaming

    @property
    def is_error(self) -> bool:
        return self._is_error

    def append(self, delta: str) -> None:
        if not self._is_streaming:
            raise RuntimeError(f"message {self.id} is finalized")
        self._text += delta

    def finalize(self) -> None:
        self._is_streaming = False

    def fail(self, text: str) -> None:
        self._text = text
        self._is_error = True
        self._is_streaming = False


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventType(enum.Enum):
    """Events emitted by the conversation session."""

    MESSAGE_ADDED = "message.added"
    MESSAGE_UPDATED = "message.updated"
    MESSAGE_REMOVED = "message.removed"

    EXCHANGE_STARTED = "exchange.started"
    EXCHANGE_DONE = "exchange.done"
    EXCHANGE_FAILED = "exchange.failed"
    EXCHANGE_CANCELLED = "exchange.cancelled"

    SESSION_RESET = "session.reset"


@dataclass
class ChatEvent:
    """Event emitted by the session via the EventBus."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
