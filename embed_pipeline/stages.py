"""
Post-processing stages run after the fetchers have produced raw snippets.

Each stage is an async callable taking the shared Environment and mutating
env.result in place.  default_stages() returns the built-in list in the
order they must run:

  resolve-href → mime-detect → ssl-force → merge → image-size
  → set-autoplay → convert-str-int
"""

import asyncio
import copy
import math
import posixpath
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from .exceptions import ContentError, HTTPStatusError
from .logger import get_module_logger
from .schemas import ImageDimensions, Snippet

logger = get_module_logger("stages")

# Extension → MIME fallback checked before doing a HEAD request
MIME_BY_EXTENSION = {
    ".mp4": "video/mp4",
    ".ogg": "video/ogg",
    ".webm": "video/webm",
}

SUPPORTED_IMAGE_EXTENSIONS = {
    ".bmp", ".gif", ".jpg", ".jpeg", ".png", ".psd", ".tif", ".tiff", ".webp", ".svg"
}

SECURE_SCHEMES = {"https"}

AUTOPLAY_MARKER = "autoplay=1"

NUMERIC_MEDIA_FIELDS = ("width", "height", "duration")

# Leading float literal, the way a lenient float parser reads "10px" as 10
LEADING_FLOAT_PATTERN = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


@dataclass
class Stage:
    """A named pipeline step; lower priority runs first."""
    id: str
    fn: Callable[[Any], Awaitable[None]]
    priority: int = 0


def _extension(href: str) -> str:
    return posixpath.splitext(urlsplit(href).path)[1].lower()


# --- resolve-href ---

async def resolve_href(env) -> None:
    """
    Make snippet hrefs absolute.

    - '/img/icon.png'              → 'http://example.com/img/icon.png'
    - '//example.com/img/icon.png' → 'http(s)://example.com/img/icon.png'
    """
    logger.debug("resolve-href")

    for snippet in env.result.snippets:
        if not snippet.href:
            continue

        parts = urlsplit(snippet.href)

        if not parts.netloc and not parts.scheme:
            snippet.href = urljoin(env.src, snippet.href)
            continue

        if not parts.scheme:
            snippet.href = urlunsplit(parts._replace(scheme=urlsplit(env.src).scheme))

    logger.debug("resolve-href: done")


# --- mime-detect ---

async def mime_detect(env) -> None:
    """Fill in snippet.type from the extension, or from a HEAD request."""
    logger.debug("mime-detect")

    # Iterate over a copy: unclassifiable snippets are removed from the result
    for snippet in list(env.result.snippets):
        if snippet.type:
            continue

        snippet.type = MIME_BY_EXTENSION.get(_extension(snippet.href))
        if snippet.type:
            continue

        logger.debug(f"mime-detect: request {snippet.href}")

        try:
            response = await env.owner.request(snippet.href, method="HEAD")
        except HTTPStatusError as e:
            raise HTTPStatusError(
                f"Mime-detect stage: Bad response code: {e.status_code}",
                status_code=e.status_code,
                details={"href": snippet.href}
            ) from e

        if not response.ok:
            raise HTTPStatusError(
                f"Mime-detect stage: Bad response code: {response.status_code}",
                status_code=response.status_code,
                details={"href": snippet.href}
            )

        snippet.type = response.content_type or None

        if not snippet.type:
            logger.debug(f"mime-detect: no content type for {snippet.href}, dropping")
            env.result.snippets = [s for s in env.result.snippets if s is not snippet]
            continue

        if snippet.type == "text/html":
            snippet.add_tag("html5")

    logger.debug("mime-detect: done")


# --- ssl-force ---

async def ssl_force(env) -> None:
    """Tag snippets served over a secure scheme with "ssl"."""
    logger.debug("ssl-force")

    for snippet in env.result.snippets:
        if snippet.href and urlsplit(snippet.href).scheme in SECURE_SCHEMES:
            snippet.add_tag("ssl")

    logger.debug("ssl-force: done")


# --- merge ---

def merge_media(base: dict, other: dict) -> dict:
    """
    Fold other into base (in place): nested dicts merge recursively,
    non-None values from other override.
    """
    for key, value in other.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_media(base[key], value)
        elif value is not None:
            base[key] = copy.deepcopy(value)
        else:
            base.setdefault(key, None)
    return base


async def merge(env) -> None:
    """Collapse snippets sharing an href into the first one seen."""
    logger.debug("merge")

    by_href: dict[str, Snippet] = {}

    for snippet in env.result.snippets:
        base = by_href.get(snippet.href)
        if base is None:
            by_href[snippet.href] = snippet
            continue

        for tag in snippet.tags:
            base.add_tag(tag)

        if snippet.media:
            if base.media is None:
                base.media = {}
            merge_media(base.media, snippet.media)

    env.result.snippets = list(by_href.values())

    logger.debug("merge: done")


# --- image-size ---

async def load_image_size(
    href: str,
    cache,
    prober,
    ttl: float
) -> Optional[ImageDimensions]:
    """
    Dimensions of one image, cache first.

    Returns None for content that can't be parsed as an image; such misses
    aren't cached.  Cache failures (StoreError) propagate.
    """
    cache_key = f"image#{href}"

    cached = await cache.get(cache_key, ttl=ttl)
    if cached:
        return ImageDimensions(**cached["dimensions"])

    try:
        dimensions = await prober.probe(href)
    except ContentError as e:
        logger.info(f"image-size: unrecognized content at {href}: {e.message}")
        return None

    await cache.set(cache_key, {"dimensions": dimensions.model_dump()})

    return dimensions


async def image_size(env) -> None:
    """Probe width/height for image snippets that lack them."""
    logger.debug("image-size")

    owner = env.owner
    queue = []

    for snippet in env.result.snippets:
        if snippet.type != "image":
            continue

        if snippet.media and snippet.media.get("width") and snippet.media.get("height"):
            continue

        if _extension(snippet.href) not in SUPPORTED_IMAGE_EXTENSIONS:
            continue

        queue.append(snippet)

    # One lookup per distinct URL, in first-seen order
    unique_hrefs = list(dict.fromkeys(snippet.href for snippet in queue))

    max_concurrency = owner.config.max_concurrency
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def load(href: str) -> Optional[ImageDimensions]:
        logger.debug(f"image-size: load {href}")
        if semaphore is None:
            return await load_image_size(href, owner.cache, owner.prober, owner.config.image_size_ttl)
        async with semaphore:
            return await load_image_size(href, owner.cache, owner.prober, owner.config.image_size_ttl)

    sizes = await asyncio.gather(*(load(href) for href in unique_hrefs))
    dimensions = dict(zip(unique_hrefs, sizes))

    for snippet in queue:
        size = dimensions.get(snippet.href)

        if size is None:
            continue  # unrecognized image content

        # SVG with non-px units can't be laid out reliably
        if not size.is_pixel():
            continue

        if snippet.media is None:
            snippet.media = {}

        snippet.media["width"] = size.width
        snippet.media["height"] = size.height

    logger.debug("image-size: done")


# --- set-autoplay ---

async def set_autoplay(env) -> None:
    """Mark html players tagged for autoplay."""
    logger.debug("set-autoplay")

    for snippet in env.result.snippets:
        if (snippet.type != "text/html"
                or not snippet.has_tag("player")
                or not snippet.has_tag("autoplay")):
            continue

        if snippet.media is None:
            snippet.media = {}
        snippet.media["autoplay"] = AUTOPLAY_MARKER

    logger.debug("set-autoplay: done")


# --- convert-str-int ---

def to_positive_float(value: Any) -> Optional[float]:
    """Parse value as a finite, strictly positive float; None otherwise."""
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        match = LEADING_FLOAT_PATTERN.match(str(value))
        if not match:
            return None
        number = float(match.group(1))

    if not math.isfinite(number) or number <= 0:
        return None
    return number


async def convert_str_int(env) -> None:
    """Coerce width/height/duration to floats, dropping bad values and lone dimensions."""
    logger.debug("convert-str-int")

    for snippet in env.result.snippets:
        media = snippet.media
        if not media:
            continue

        for field in NUMERIC_MEDIA_FIELDS:
            if field not in media:
                continue
            number = to_positive_float(media[field])
            if number is None:
                del media[field]
            else:
                media[field] = number

        # width and height only make sense as a pair
        if "width" not in media or "height" not in media:
            media.pop("width", None)
            media.pop("height", None)

    logger.debug("convert-str-int: done")


def default_stages() -> list[Stage]:
    """Built-in stages, already in priority order."""
    return [
        Stage("resolve-href", resolve_href, 10),
        Stage("mime-detect", mime_detect, 20),
        Stage("ssl-force", ssl_force, 30),
        Stage("merge", merge, 40),
        Stage("image-size", image_size, 50),
        Stage("set-autoplay", set_autoplay, 60),
        Stage("convert-str-int", convert_str_int, 70),
    ]
