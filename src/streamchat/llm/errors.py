"""Error taxonomy and user-facing classification.

Every failure of an exchange ends up here: the session asks the
``ErrorClassifier`` which kind of failure it was and which message the
user should see in place of the answer.
"""

from __future__ import annotations

import enum

import httpx


class ChatError(Exception):
    """Base class for streamchat errors."""


class ConfigurationError(ChatError):
    """No usable credential (or other required setting) is configured."""


class APIStatusError(ChatError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"API Error {status_code}: {body}")


class ExhaustedRetriesError(ChatError):
    """Every attempt failed at the transport level."""

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"request failed after {attempts} attempts: {last_error}")


class MalformedEventError(ChatError):
    """A single stream event could not be decoded."""

    def __init__(self, line: str, reason: str = "") -> None:
        self.line = line
        super().__init__(f"malformed stream event ({reason}): {line[:120]!r}")


class ErrorKind(enum.Enum):
    CONFIGURATION = "configuration"
    RATE_LIMITED = "rate_limited"
    AUTH = "auth"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TRANSPORT = "transport"
    UNKNOWN = "unknown"


_MESSAGES = {
    ErrorKind.CONFIGURATION: "Please provide a valid Gemini API Key in the settings.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    ErrorKind.AUTH: "Invalid API key. Please check your API key in the settings.",
    ErrorKind.SERVICE_UNAVAILABLE: (
        "Gemini service is temporarily unavailable. Please try again."
    ),
}


class ErrorClassifier:
    """Map exceptions to an ``ErrorKind`` and a display message.

    Error kinds:
      configuration       - missing credential, no request was made
      rate_limited        - still 429 after all attempts
      auth                - credential rejected (401/403)
      service_unavailable - still >=500 after all attempts
      transport           - no response at all (connection, timeout)
      unknown             - anything else (other 4xx, bad payloads)
    """

    def classify(self, error: BaseException) -> ErrorKind:
        if isinstance(error, ConfigurationError):
            return ErrorKind.CONFIGURATION
        if isinstance(error, APIStatusError):
            status = error.status_code
            if status == 429:
                return ErrorKind.RATE_LIMITED
            if status in (401, 403):
                return ErrorKind.AUTH
            if status >= 500:
                return ErrorKind.SERVICE_UNAVAILABLE
            return ErrorKind.UNKNOWN
        if isinstance(error, (ExhaustedRetriesError, httpx.TransportError)):
            return ErrorKind.TRANSPORT
        return ErrorKind.UNKNOWN

    def user_message(self, kind: ErrorKind, model: str) -> str:
        return _MESSAGES.get(kind, f"Error connecting to {model}.")
