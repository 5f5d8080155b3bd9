"""
Resource prober: pixel dimensions of a remote image.

Raster formats are sniffed with Pillow.  SVGs are parsed as markup; their
width/height may carry units ("5in", "1px") and may be derived from viewBox.
Unparseable bytes raise ContentError so callers can treat them as a soft miss.

The body is streamed and reading stops as soon as the header is understood,
or fails once max_bytes have arrived without a recognizable header.
"""

import io
import re
import warnings
from typing import Optional

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from PIL import Image, UnidentifiedImageError

from .config import DEFAULT_MAX_IMAGE_BYTES
from .exceptions import ContentError, HTTPStatusError
from .http_client import BaseHTTPClient
from .logger import get_module_logger
from .schemas import ImageDimensions

logger = get_module_logger("prober")

# "12", "12.5px", "5in", ".5em"
LENGTH_PATTERN = re.compile(r'^\s*(\d*\.?\d+(?:[eE][+-]?\d+)?)\s*([a-z%]*)\s*$', re.IGNORECASE)
SVG_SNIFF_PATTERN = re.compile(rb'<svg[\s>/]', re.IGNORECASE)
SVG_OPEN_TAG_PATTERN = re.compile(rb'<svg[\s>/][^>]*>', re.IGNORECASE)

# Only the head of the document is inspected for the <svg tag
SNIFF_BYTES = 4096


def _parse_length(value: Optional[str]) -> Optional[tuple[float, str]]:
    """Split an SVG length into (number, unit); unit defaults to px."""
    if not value:
        return None
    match = LENGTH_PATTERN.match(value)
    if not match:
        return None
    number = float(match.group(1))
    if number <= 0:
        return None
    return number, (match.group(2).lower() or "px")


def _parse_viewbox(value: Optional[str]) -> Optional[tuple[float, float]]:
    if not value:
        return None
    parts = re.split(r'[\s,]+', value.strip())
    if len(parts) != 4:
        return None
    try:
        width, height = float(parts[2]), float(parts[3])
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


def is_svg(data: bytes) -> bool:
    return SVG_SNIFF_PATTERN.search(data[:SNIFF_BYTES]) is not None


def _find_svg_root(data: bytes):
    """Locate the <svg> element, as XML first and as lenient HTML markup second."""
    svg = BeautifulSoup(data, "xml").find("svg")
    if svg is not None:
        return svg

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        return BeautifulSoup(data, "lxml").find("svg")


def svg_dimensions(data: bytes) -> ImageDimensions:
    """
    Read dimensions from SVG markup.

    Attribute names are matched case-insensitively ("viewBox" and "viewbox").

    Raises:
        ContentError: no usable width/height/viewBox
    """
    svg = _find_svg_root(data)
    if svg is None:
        raise ContentError("SVG root element not found")

    attrs = {name.lower(): value for name, value in svg.attrs.items()}
    width = _parse_length(attrs.get("width"))
    height = _parse_length(attrs.get("height"))
    viewbox = _parse_viewbox(attrs.get("viewbox"))

    if width and height:
        return ImageDimensions(width=width[0], height=height[0],
                               width_units=width[1], height_units=height[1])

    if viewbox:
        vb_width, vb_height = viewbox
        # Only one side given: keep the viewBox aspect ratio in that side's unit
        if width:
            return ImageDimensions(width=width[0], height=width[0] * vb_height / vb_width,
                                   width_units=width[1], height_units=width[1])
        if height:
            return ImageDimensions(width=height[0] * vb_width / vb_height, height=height[0],
                                   width_units=height[1], height_units=height[1])
        return ImageDimensions(width=vb_width, height=vb_height)

    raise ContentError("SVG has no usable width/height or viewBox")


def raster_dimensions(data: bytes) -> ImageDimensions:
    """
    Read dimensions from raster image bytes (header only).

    Pixels are never decoded, so Pillow's decompression-bomb limit is lifted
    for the duration of the open; huge declared sizes are reported as is.

    Raises:
        ContentError: format not recognized
    """
    max_pixels = Image.MAX_IMAGE_PIXELS
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", Image.DecompressionBombWarning)
            Image.MAX_IMAGE_PIXELS = None
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ContentError(f"Unrecognized image format: {e}") from e
    finally:
        Image.MAX_IMAGE_PIXELS = max_pixels
    return ImageDimensions(width=width, height=height)


def image_dimensions(data: bytes) -> ImageDimensions:
    """Sniff the format and return dimensions."""
    if is_svg(data):
        return svg_dimensions(data)
    return raster_dimensions(data)


def partial_image_dimensions(data: bytes) -> Optional[ImageDimensions]:
    """
    Dimensions from the leading bytes of an image.

    Returns None while more data is needed.  A complete <svg ...> open tag
    is final: a ContentError from it is raised.
    """
    if is_svg(data):
        if SVG_OPEN_TAG_PATTERN.search(data) is None:
            return None
        return svg_dimensions(data)

    try:
        return raster_dimensions(data)
    except ContentError:
        return None


class ImageProber:
    """Streams an image through the request capability and reads its size."""

    def __init__(self, client: BaseHTTPClient, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES):
        self.client = client
        self.max_bytes = max_bytes

    async def probe(self, url: str) -> ImageDimensions:
        """
        Probe a remote image.

        Raises:
            TransportError: request failed
            HTTPStatusError: non-2xx response
            ContentError: bytes are not a recognizable image, or no header
                was found within max_bytes
        """
        async with self.client.stream(url) as (response, chunks):
            if not response.ok:
                raise HTTPStatusError(
                    f"Image probe: Bad response code: {response.status_code}",
                    status_code=response.status_code,
                    details={"url": url}
                )

            buffer = bytearray()
            async for chunk in chunks:
                buffer.extend(chunk)

                dimensions = partial_image_dimensions(bytes(buffer))
                if dimensions is not None:
                    break

                if len(buffer) > self.max_bytes:
                    raise ContentError(
                        f"No image header within {self.max_bytes} bytes",
                        details={"url": url, "read": len(buffer)}
                    )
            else:
                dimensions = image_dimensions(bytes(buffer))

        logger.debug(f"Probed {url}: {dimensions.width}x{dimensions.height}")
        return dimensions
