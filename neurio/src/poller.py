"""
Async HTTP poller for the Neurio CT sensor.

Issues one authenticated ``GET http://<address>/current-sample`` per call and
streams the response body chunk by chunk into the session's ReceiveBuffer.
Designed to be robust:

- Never raises on transport problems; returns False and logs the failure.
- No retry within a call; the poll loop simply tries again next interval.
- Every exchange is bounded by a configurable request timeout.

CHANGELOG:
- 2026-10-17: Bound the whole exchange, not each read, by the timeout
- 2026-10-17: Treat non-2xx responses as transport failures
- 2026-10-17: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from neurio.src.errors import TransportError

if TYPE_CHECKING:
    from neurio.src.rxbuffer import ReceiveBuffer

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S: float = 5.0
"""Timeout per HTTP exchange in seconds."""


class Poller:
    """Stateful HTTP poller holding one client for the process lifetime.

    Args:
        url: Sensor status endpoint.
        auth: Pre-encoded basic credential, sent as
            ``Authorization: Basic <auth>``.
        timeout_s: Upper bound on one exchange in seconds.
        verbose: Log the raw response text after each successful poll.
        client: Pre-built ``httpx.AsyncClient``.  When given it is used
            as-is and not closed by :meth:`aclose`.
    """

    def __init__(
        self,
        *,
        url: str,
        auth: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        verbose: bool = False,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._headers = {"Authorization": f"Basic {auth}"}
        self._verbose = verbose
        self._timeout_s = timeout_s
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s))
        self._consecutive_failures: int = 0

    @property
    def consecutive_failures(self) -> int:
        """Number of failed polls since the last successful one."""
        return self._consecutive_failures

    async def aclose(self) -> None:
        """Close the HTTP client if this poller created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Poller:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def poll(self, buffer: ReceiveBuffer) -> bool:
        """Execute a single GET and stream the body into *buffer*.

        The caller is expected to :meth:`~ReceiveBuffer.reset` the buffer
        beforehand.  On failure the buffer keeps whatever partial content
        it reached.

        Returns:
            ``True`` if the exchange completed with a 2xx status,
            ``False`` on any transport error.
        """
        try:
            await self._do_poll(buffer)
        except TransportError as exc:
            self._consecutive_failures += 1
            logger.warning(
                "Transport error (consecutive failures: %d): GET %s failed: %s",
                self._consecutive_failures,
                self._url,
                exc,
            )
            return False

        self._consecutive_failures = 0
        if self._verbose:
            logger.info("Sensor response: %s", buffer.text)
        return True

    async def _do_poll(self, buffer: ReceiveBuffer) -> None:
        """Run one exchange, bounded as a whole by the request timeout.

        httpx applies its timeout per read, so a body trickling in slower
        than that would otherwise hold the loop indefinitely.

        Raises:
            TransportError: On an HTTP failure, a non-2xx status, an exchange
                outlasting the timeout, or a receive buffer that cannot grow.
        """
        try:
            async with asyncio.timeout(self._timeout_s):
                async with self._client.stream(
                    "GET", self._url, headers=self._headers
                ) as response:
                    async for chunk in response.aiter_bytes():
                        buffer.append(chunk)
                    response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(str(exc)) from exc
        except TimeoutError as exc:
            raise TransportError(
                f"no complete response within {self._timeout_s}s"
            ) from exc
