"""Conversation state for streamchat."""

from streamchat.core.session import ConversationSession, StreamSession

__all__ = ["ConversationSession", "StreamSession"]
