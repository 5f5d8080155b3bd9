"""
Pydantic schemas shared by the pipeline stages.

Snippet: one candidate embeddable resource, mutated in place by stages
Result: the payload under construction (ordered snippet list)
ImageDimensions / CacheEntry: what the image-size lookup probes and caches
Response: normalized answer of the request capability

Data flow through the pipeline:
  upstream fetchers → Result(snippets) → stages (in priority order) → Result
"""

from typing import Any, Optional
from pydantic import BaseModel, Field


class Snippet(BaseModel):
    """A candidate embeddable resource."""
    href: str = ""                                  # may start relative or protocol-relative
    type: Optional[str] = None                      # MIME type or shorthand category ("image")
    tags: list[str] = Field(default_factory=list)   # kept duplicate-free via add_tag()
    media: Optional[dict[str, Any]] = None          # width, height, duration, autoplay, ...

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def add_tag(self, tag: str) -> None:
        """Append a tag unless it is already present."""
        if tag not in self.tags:
            self.tags.append(tag)


class Result(BaseModel):
    """Payload built up by one pipeline pass."""
    snippets: list[Snippet] = Field(default_factory=list)


class ImageDimensions(BaseModel):
    """Probed size of an image; SVGs may carry non-pixel units."""
    width: float
    height: float
    width_units: str = "px"
    height_units: str = "px"

    def is_pixel(self) -> bool:
        return self.width_units == "px" and self.height_units == "px"


class CacheEntry(BaseModel):
    """Shape of an image-size record in the external cache store."""
    dimensions: ImageDimensions
    timestamp: float   # epoch seconds, stamped by CacheAdapter.set()


class Response(BaseModel):
    """Response of the request capability, normalized at the transport boundary."""
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)   # lower-cased header names
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        """Content-Type without parameters ("text/html; charset=utf-8" → "text/html")."""
        return self.headers.get("content-type", "").split(";")[0].strip()
