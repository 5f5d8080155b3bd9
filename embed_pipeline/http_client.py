"""
HTTP request capability used by the stages and the image prober.

BaseHTTPClient is the seam: stages only call request(url, method), so tests
can inject a fake client and production uses HttpxClient.  Transport errors
are normalized here, at the boundary, into the package's own exceptions.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from .config import PipelineConfig
from .exceptions import TransportError
from .logger import get_module_logger
from .schemas import Response

logger = get_module_logger("http_client")


class BaseHTTPClient(ABC):
    """Abstract base class for HTTP clients."""

    @abstractmethod
    async def request(self, url: str, method: str = "GET") -> Response:
        """
        Send a request and return the normalized response.

        Non-2xx answers are returned, not raised; callers decide.

        Args:
            url: Absolute URL
            method: HTTP method ("GET", "HEAD")

        Returns:
            Response with status code, lower-cased headers and body

        Raises:
            TransportError: if the request could not be delivered
        """
        pass

    @asynccontextmanager
    async def stream(self, url: str):
        """
        GET url and expose the body as an async iterator of chunks.

        Yields (response, chunks); response.content is left empty.  The
        default reads the whole body through request(); HttpxClient streams.
        """
        response = await self.request(url, method="GET")

        async def chunks() -> AsyncIterator[bytes]:
            if response.content:
                yield response.content

        yield response.model_copy(update={"content": b""}), chunks()

    async def aclose(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()


class HttpxClient(BaseHTTPClient):
    """httpx-backed async client."""

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        headers = {"User-Agent": user_agent} if user_agent else None
        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
            transport=transport
        )

    async def request(self, url: str, method: str = "GET") -> Response:
        logger.debug(f"{method} {url}")
        try:
            resp = await self.client.request(method, url)
        except (httpx.TransportError, httpx.InvalidURL) as e:
            logger.debug(f"{method} {url} failed: {e!r}")
            raise TransportError(f"Request to {url!r} failed: {e}", url=url) from e

        return Response(
            status_code=resp.status_code,
            headers={k.lower(): v for k, v in resp.headers.items()},
            content=resp.content if method != "HEAD" else b""
        )

    @asynccontextmanager
    async def stream(self, url: str):
        logger.debug(f"GET (stream) {url}")
        try:
            async with self.client.stream("GET", url) as resp:
                response = Response(
                    status_code=resp.status_code,
                    headers={k.lower(): v for k, v in resp.headers.items()}
                )
                yield response, resp.aiter_bytes()
        except (httpx.TransportError, httpx.InvalidURL) as e:
            logger.debug(f"GET (stream) {url} failed: {e!r}")
            raise TransportError(f"Request to {url!r} failed: {e}", url=url) from e

    async def aclose(self) -> None:
        await self.client.aclose()


class HTTPClient:
    """
    Factory for HTTP clients.

    Usage:
        client = HTTPClient.create()
        client = HTTPClient.create(PipelineConfig(request_timeout=5))
    """

    @staticmethod
    def create(
        config: Optional[PipelineConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> BaseHTTPClient:
        config = config or PipelineConfig()
        return HttpxClient(
            timeout=config.request_timeout,
            user_agent=config.user_agent,
            transport=transport
        )
