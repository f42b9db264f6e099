"""Backend client, retry policy and stream decoding for streamchat."""

from streamchat.llm.backoff import BackoffExecutor
from streamchat.llm.client import GenerativeClient, build_body
from streamchat.llm.errors import (
    APIStatusError,
    ChatError,
    ConfigurationError,
    ErrorClassifier,
    ErrorKind,
    ExhaustedRetriesError,
    MalformedEventError,
)
from streamchat.llm.stream_reader import StreamTokenReader

__all__ = [
    "APIStatusError",
    "BackoffExecutor",
    "ChatError",
    "ConfigurationError",
    "ErrorClassifier",
    "ErrorKind",
    "ExhaustedRetriesError",
    "GenerativeClient",
    "MalformedEventError",
    "StreamTokenReader",
    "build_body",
]
