"""Retrying request execution with exponential backoff.

Policy per attempt (0-indexed), with ``max_attempts`` slots in total:

* transport failure: wait ``2 ** attempt`` seconds and retry; when no
  attempt is left raise ``ExhaustedRetriesError`` chained to the failure
* 429: wait ``Retry-After`` seconds when the header parses, otherwise
  ``2 ** attempt``; the last 429 is returned to the caller as-is
* >=500: same waits as a transport failure; the last one is returned as-is
* anything else: returned immediately
"""

from __future__ import annotations

import asyncio
import logging
import math

import httpx

from .errors import ExhaustedRetriesError

_logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
_BACKOFF_BASE = 1  # seconds -- exponential: 1, 2, 4


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the failed attempt number *attempt*."""
    return _BACKOFF_BASE * (2 ** attempt)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds.

    HTTP-date values are not supported and count as unparseable.
    """
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class BackoffExecutor:
    """Send ``httpx.Request`` objects, retrying per the module policy.

    Parameters
    ----------
    client:
        The ``httpx.AsyncClient`` used to send requests.
    max_attempts:
        Default number of attempts for :meth:`execute`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._client = client
        self.max_attempts = max_attempts

    async def execute(
        self,
        request: httpx.Request,
        max_attempts: int | None = None,
        *,
        stream: bool = False,
    ) -> httpx.Response:
        """Send *request* and return the response that ends the retry loop.

        With ``stream=True`` the returned response body is not read yet and
        the caller must close it.  Discarded retryable responses are closed
        here.
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = await self._client.send(request, stream=stream)
            except httpx.TransportError as e:
                if is_last:
                    raise ExhaustedRetriesError(e, attempts) from e
                wait = backoff_delay(attempt)
                _logger.warning(
                    "Request failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt + 1, attempts, e, wait,
                )
                await asyncio.sleep(wait)
                continue

            if not _is_retryable_status(response.status_code) or is_last:
                return response

            wait = backoff_delay(attempt)
            if response.status_code == 429:
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
                if retry_after is not None:
                    wait = retry_after
                _logger.warning(
                    "Rate limited (attempt %d/%d); retrying in %.1fs",
                    attempt + 1, attempts, wait,
                )
            else:
                _logger.warning(
                    "Server error %d (attempt %d/%d); retrying in %.1fs",
                    response.status_code, attempt + 1, attempts, wait,
                )
            await response.aclose()
            await asyncio.sleep(wait)

        # The loop always returns or raises on its last attempt.
        raise AssertionError("unreachable")
