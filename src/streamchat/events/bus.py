"""Async pub/sub EventBus between the conversation session and front ends."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from streamchat.types import ChatEvent, EventType

_logger = logging.getLogger(__name__)

# Subscribing with this key receives every event
WILDCARD = "*"

# Handlers may be sync or async callables taking a ChatEvent
Handler = Callable[[ChatEvent], Any]


class EventBus:
    """Ordered async event bus.

    Handlers run one after another, in subscription order, so a renderer
    always sees ``message.added`` before the first ``message.updated`` for
    the same message.  A failing handler is logged and does not stop the
    others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(
        self,
        event_type: EventType | str,
        handler: Handler,
    ) -> Callable[[], None]:
        """Register *handler* and return a function that removes it."""
        key = self._key(event_type)
        self._handlers.setdefault(key, []).append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        handlers = self._handlers.get(self._key(event_type), [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: ChatEvent) -> None:
        handlers = self._handlers.get(self._key(event.type), [])
        handlers = handlers + self._handlers.get(WILDCARD, [])
        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _logger.exception(
                    "EventBus handler %s raised for event %s",
                    getattr(handler, "__name__", handler),
                    event.type,
                )

    @staticmethod
    def _key(event_type: EventType | str) -> str:
        if isinstance(event_type, EventType):
            return event_type.value
        return str(event_type)
