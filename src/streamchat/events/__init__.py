"""Event fan-out for streamchat front ends."""

from streamchat.events.bus import EventBus

__all__ = ["EventBus"]
