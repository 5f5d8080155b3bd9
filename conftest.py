"""Shared fixtures: a scripted HTTP client and pipeline factory."""

import asyncio
import base64
import struct
import zlib

import pytest

from embed_pipeline.cache import CacheAdapter, MemoryStore
from embed_pipeline.config import PipelineConfig
from embed_pipeline.exceptions import TransportError
from embed_pipeline.http_client import BaseHTTPClient
from embed_pipeline.main import EmbedPipeline
from embed_pipeline.pipeline import Environment
from embed_pipeline.schemas import Response, Result, Snippet

# 1x1 transparent gif
DEMO_IMAGE = base64.b64decode("R0lGODlhAQABAAAAACH5BAEKAAEALAAAAAABAAEAAAICTAEAOw==")
BAD_IMAGE = base64.b64decode("0000")


def png_header(width, height):
    """Minimal PNG: signature, IHDR, empty IDAT and IEND."""
    def chunk(kind, body):
        crc = zlib.crc32(kind + body) & 0xFFFFFFFF
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")


class FakeClient(BaseHTTPClient):
    """
    Scripted client: routes map (method, url) to a Response or an exception.

    Unknown routes behave like a refused connection.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def request(self, url, method="GET"):
        self.calls.append((method, url))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield so concurrent lookups overlap
            await asyncio.sleep(0)
            route = self.routes.get((method, url))
            if route is None:
                raise TransportError(f"connect ECONNREFUSED {url}", url=url)
            if isinstance(route, Exception):
                raise route
            return route
        finally:
            self.in_flight -= 1


def ok(content=b"", content_type=None, status_code=200):
    headers = {"content-type": content_type} if content_type is not None else {}
    return Response(status_code=status_code, headers=headers, content=content)


@pytest.fixture
def make_pipeline():
    """Build an EmbedPipeline over a FakeClient and a fresh in-memory cache."""
    def _make(routes=None, cache=None, **config):
        client = FakeClient(routes)
        cache = cache if cache is not None else CacheAdapter(MemoryStore())
        return EmbedPipeline(config=PipelineConfig(**config), client=client, cache=cache)
    return _make


@pytest.fixture
def make_env(make_pipeline):
    """Build an Environment holding the given snippets."""
    def _make(snippets, src="http://example.com/", routes=None, cache=None, **config):
        owner = make_pipeline(routes=routes, cache=cache, **config)
        result = Result(snippets=[Snippet.model_validate(s) for s in snippets])
        return Environment(src=src, owner=owner, result=result)
    return _make
