"""
HTTP Transport
==============

The transport contract the core relies on for anything that goes over
HTTP, implemented with httpx.

    transport = HttpTransport(timeout=30)
    response = await transport.post(url, headers={...}, json={...})
    if response.error:
        ...

Transport failures (connection refused, timeouts, TLS problems) never
raise: they come back as a TransportResponse with error=True and
status_code=-1. HTTP error statuses are returned as they are; deciding
what a 4xx/5xx means is up to the caller. Nothing is retried here.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

import httpx

from agentcore.errors import TransportError
from agentcore.utils.config import get_config
from agentcore.utils.logger import Logger

logger = Logger("Transport")

ChunkWriter = Callable[[str], None]


@dataclass
class TransportResponse:
    """
    Result of one HTTP exchange.

    Attributes:
        status_code: HTTP status, or -1 when the request never completed
        text: Response body (empty when streamed through a chunk writer)
        headers: Response headers
        error: True when there was a transport failure
        error_message: Transport failure description or HTTP reason phrase
    """
    status_code: int
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    error: bool = False
    error_message: str = ""

    @property
    def ok(self) -> bool:
        return not self.error and 200 <= self.status_code < 300

    def raise_for_error(self) -> None:
        """Raise TransportError unless the exchange succeeded with a 2xx status."""
        if self.ok:
            return
        message = self.error_message or f"HTTP {self.status_code}"
        raise TransportError(message, None if self.status_code < 0 else self.status_code)


class HttpTransport:
    """
    Thin async HTTP client.

    Owns one httpx.AsyncClient so connections are pooled across calls;
    close it with aclose() (or use the transport as an async context
    manager).
    """

    def __init__(
        self,
        timeout: float | None = None,
        follow_redirects: bool | None = None,
        client: httpx.AsyncClient | None = None
    ):
        """
        Args:
            timeout: Default per-request timeout in seconds
            follow_redirects: Follow 3xx responses
            client: Pre-built client (for custom transports or tests)
        """
        config = get_config().transport
        self.timeout = timeout if timeout is not None else config.timeout_seconds
        if follow_redirects is None:
            follow_redirects = config.follow_redirects

        self._client = client or httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=follow_redirects,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def post(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
        json: Any = None,
        timeout: float | None = None,
        on_chunk: ChunkWriter | None = None
    ) -> TransportResponse:
        """
        POST a request.

        Args:
            url: Target URL
            headers: Request headers
            body: Raw body (mutually exclusive with json)
            json: JSON-serializable body
            timeout: Override of the default timeout
            on_chunk: Receives the response body incrementally as text

        Returns:
            TransportResponse describing the outcome
        """
        return await self._send("POST", url, headers, body, json, timeout, on_chunk)

    async def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None
    ) -> TransportResponse:
        """GET a resource."""
        return await self._send("GET", url, headers, None, None, timeout, None)

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None,
        body: str | bytes | None,
        json: Any,
        timeout: float | None,
        on_chunk: ChunkWriter | None
    ) -> TransportResponse:
        request = self._client.build_request(
            method,
            url,
            headers=headers,
            content=body,
            json=json,
            timeout=timeout if timeout is not None else self.timeout,
        )

        try:
            if on_chunk is None:
                response = await self._client.send(request)
                return TransportResponse(
                    status_code=response.status_code,
                    text=response.text,
                    headers=dict(response.headers),
                    error_message=response.reason_phrase,
                )

            response = await self._client.send(request, stream=True)
            try:
                async for chunk in response.aiter_text():
                    if chunk:
                        on_chunk(chunk)
            finally:
                await response.aclose()
            return TransportResponse(
                status_code=response.status_code,
                headers=dict(response.headers),
                error_message=response.reason_phrase,
            )

        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {type(e).__name__}: {e}")
            return TransportResponse(status_code=-1, error=True, error_message=str(e) or type(e).__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
