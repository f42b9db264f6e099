"""Conversation session: history bookkeeping and the single in-flight stream.

    submit → build request (history + new user turn) → stream deltas into a
    live model message → on success append both turns to history

Only one exchange runs at a time.  Submitting again, or resetting,
cancels the running exchange first; its partial answer is removed from the
message list and never reaches the history.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Sequence, Union

import httpx

from streamchat.config import ChatConfig
from streamchat.events.bus import EventBus
from streamchat.llm.client import GenerativeClient
from streamchat.llm.errors import ChatError, ConfigurationError, ErrorClassifier, ErrorKind
from streamchat.llm.stream_reader import extract_delta
from streamchat.types import (
    ChatEvent,
    ConversationTurn,
    EventType,
    InlineDataPart,
    Message,
    Role,
    TextPart,
)

_logger = logging.getLogger(__name__)

DEFAULT_IMAGE_PROMPT = "Analyze this image"
DEFAULT_IMAGE_MIME = "image/jpeg"
TRANSCRIBE_INSTRUCTION = (
    "Transcribe the following audio exactly as spoken. Do not add any commentary."
)

# A base64 string (sent as image/jpeg) or a (mime_type, base64) pair
ImageInput = Union[str, tuple[str, str]]


@dataclass
class StreamSession:
    """One exchange: the turn being sent and the message being filled."""

    message: Message
    user_turn: ConversationTurn
    model: str
    task: asyncio.Task[None] | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()


def _image_part(image: ImageInput) -> InlineDataPart:
    if isinstance(image, tuple):
        mime_type, data = image
        return InlineDataPart(mime_type=mime_type, data=data)
    return InlineDataPart(mime_type=DEFAULT_IMAGE_MIME, data=image)


class ConversationSession:
    """Owns the visible messages, the history and the active exchange.

    Parameters
    ----------
    config:
        Credentials, model names and sampling parameters.
    event_bus:
        Receives an event for every visible change (optional).
    transport:
        ``httpx`` transport for the backend client (tests use a mock).
    """

    def __init__(
        self,
        config: ChatConfig,
        event_bus: EventBus | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client = GenerativeClient(config, transport=transport)
        self._event_bus = event_bus or EventBus()
        self._classifier = ErrorClassifier()
        self._messages: list[Message] = []
        self._history: list[ConversationTurn] = []
        self._active: StreamSession | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def config(self) -> ChatConfig:
        return self._config

    @property
    def events(self) -> EventBus:
        return self._event_bus

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def history(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._history)

    @property
    def is_busy(self) -> bool:
        return self._active is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def submit(
        self,
        prompt: str,
        images: Sequence[ImageInput] = (),
        *,
        from_dictation: bool = False,
    ) -> asyncio.Task[None] | None:
        """Send *prompt* (and *images*) as the next user turn.

        Returns the task streaming the answer, or ``None`` when no request
        was started (empty input, missing credentials, or superseded by a
        newer submission before it could start).
        """
        if not prompt.strip() and not images:
            return None

        superseded = self._detach_active()
        parts = [_image_part(img) for img in images]
        user_message = Message(
            role=Role.USER, text=prompt, images=tuple(p.data for p in parts),
        )
        self._messages.append(user_message)

        if not self._config.has_credentials:
            _logger.warning("No API key configured, request not sent")
            error = Message(
                role=Role.MODEL,
                text=self._classifier.user_message(
                    ErrorKind.CONFIGURATION, self._config.model,
                ),
                is_error=True,
            )
            self._messages.append(error)
            await self._announce_superseded(superseded)
            await self._emit(EventType.MESSAGE_ADDED, message=user_message)
            await self._emit(EventType.MESSAGE_ADDED, message=error)
            return None

        user_turn = ConversationTurn(
            role=Role.USER,
            parts=(TextPart(prompt or DEFAULT_IMAGE_PROMPT), *parts),
        )
        reply = Message(role=Role.MODEL, is_streaming=True)
        self._messages.append(reply)
        active = StreamSession(
            message=reply,
            user_turn=user_turn,
            model=self._config.dictation_model if from_dictation else self._config.model,
        )
        self._active = active

        await self._announce_superseded(superseded)
        await self._emit(EventType.MESSAGE_ADDED, message=user_message)
        await self._emit(EventType.MESSAGE_ADDED, message=reply)

        # A newer submit() or reset() may have run while events were handled
        if active.cancelled:
            return None
        active.task = asyncio.create_task(self._run_exchange(active))
        return active.task

    async def cancel(self) -> bool:
        """Cancel the running exchange, if any.  Returns whether one ran."""
        superseded = self._detach_active()
        await self._announce_superseded(superseded)
        await self._wait_finished(superseded)
        return superseded is not None

    async def reset(self, config: ChatConfig | None = None) -> None:
        """Cancel any exchange and clear messages and history.

        Passing *config* re-initializes the session with new settings.
        """
        superseded = self._detach_active()
        self._messages.clear()
        self._history.clear()
        await self._wait_finished(superseded)
        if config is not None:
            await self._client.close()
            self._config = config
            self._client = GenerativeClient(config, transport=self._transport)
        _logger.info("Session reset")
        await self._emit(EventType.SESSION_RESET)

    async def transcribe(self, audio: bytes | str, mime_type: str) -> str:
        """Transcribe recorded audio with the dictation model.

        *audio* is raw bytes or an already base64-encoded string.
        """
        if not self._config.has_credentials:
            raise ConfigurationError(
                self._classifier.user_message(
                    ErrorKind.CONFIGURATION, self._config.dictation_model,
                )
            )
        if isinstance(audio, bytes):
            audio = base64.b64encode(audio).decode("ascii")
        turn = ConversationTurn(
            role=Role.USER,
            parts=(
                TextPart(TRANSCRIBE_INSTRUCTION),
                InlineDataPart(mime_type=mime_type, data=audio),
            ),
        )
        data = await self._client.generate([turn], self._config.dictation_model)
        try:
            return extract_delta(data).strip()
        except (AttributeError, TypeError) as e:
            raise ChatError(f"unexpected transcription response: {e}") from e

    async def aclose(self) -> None:
        """Cancel any exchange and release the HTTP client."""
        superseded = self._detach_active()
        await self._wait_finished(superseded)
        await self._client.close()

    # ------------------------------------------------------------------
    # Exchange
    # ------------------------------------------------------------------

    async def _run_exchange(self, active: StreamSession) -> None:
        message = active.message
        contents = [*self._history, active.user_turn]
        await self._emit(EventType.EXCHANGE_STARTED, message=message, model=active.model)

        try:
            async with self._client.stream(contents, active.model) as reader:
                async for delta in reader:
                    if active.cancelled:
                        return
                    message.append(delta)
                    await self._emit(EventType.MESSAGE_UPDATED, message=message)
        except asyncio.CancelledError:
            _logger.debug("Exchange %s cancelled", message.id)
            raise
        except (ChatError, httpx.HTTPError) as e:
            _logger.warning("Exchange %s failed: %s", message.id, e)
            await self._fail(active, e)
            return
        except Exception as e:
            _logger.exception("Exchange %s failed unexpectedly", message.id)
            await self._fail(active, e)
            return

        if active.cancelled:
            return
        message.finalize()
        self._history.append(active.user_turn)
        self._history.append(
            ConversationTurn(role=Role.MODEL, parts=(TextPart(message.text),))
        )
        self._release(active)
        _logger.debug("Exchange %s done (%d chars)", message.id, len(message.text))
        await self._emit(EventType.MESSAGE_UPDATED, message=message)
        await self._emit(EventType.EXCHANGE_DONE, message=message)

    async def _fail(self, active: StreamSession, error: BaseException) -> None:
        if active.cancelled:
            return
        kind = self._classifier.classify(error)
        active.message.fail(self._classifier.user_message(kind, active.model))
        self._release(active)
        await self._emit(EventType.MESSAGE_UPDATED, message=active.message)
        await self._emit(
            EventType.EXCHANGE_FAILED, message=active.message, kind=kind.value,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release(self, active: StreamSession) -> None:
        if self._active is active:
            self._active = None

    def _detach_active(self) -> StreamSession | None:
        """Cancel the active exchange and drop its message, synchronously."""
        active, self._active = self._active, None
        if active is None:
            return None
        active.cancel()
        if active.message in self._messages:
            self._messages.remove(active.message)
        _logger.debug("Exchange %s superseded", active.message.id)
        return active

    async def _announce_superseded(self, active: StreamSession | None) -> None:
        if active is None:
            return
        await self._emit(EventType.MESSAGE_REMOVED, message=active.message)
        await self._emit(EventType.EXCHANGE_CANCELLED, message=active.message)

    @staticmethod
    async def _wait_finished(active: StreamSession | None) -> None:
        if active is not None and active.task is not None:
            await asyncio.wait([active.task])

    async def _emit(self, event_type: EventType, **data: Any) -> None:
        await self._event_bus.emit(ChatEvent(type=event_type, data=data))
