"""Average-colour gradient placeholders using Pillow.

A 32x32 rendition of the image is downloaded through the failover resolver
and reduced to one average colour, which becomes a CSS gradient that can sit
behind the real image while it loads.
"""
from __future__ import annotations

import io
import logging
from typing import Tuple

import httpx
from PIL import Image

from mediacdn.models import TransformOptions
from mediacdn.services.resolver import ImageUrlResolver

logger = logging.getLogger(__name__)

NEUTRAL_GRADIENT = (
    "linear-gradient(135deg, rgba(220, 220, 220, 0.7), "
    "rgba(200, 200, 200, 0.8), rgba(180, 180, 180, 0.9))"
)
_SAMPLE_SIZE = 32

RGB = Tuple[int, int, int]


def average_color(image_bytes: bytes) -> RGB:
    """Average RGB colour of an encoded image."""

    with Image.open(io.BytesIO(image_bytes)) as img:
        img = img.convert("RGB")
        # Box-filter down to one pixel; that pixel is the mean colour
        pixel = img.resize((1, 1), Image.Resampling.BOX).getpixel((0, 0))
    return pixel[0], pixel[1], pixel[2]


def color_gradient(color: RGB) -> str:
    r, g, b = color
    lighter = tuple(min(255, c + 20) for c in color)
    darker = tuple(max(0, c - 40) for c in color)
    return (
        f"linear-gradient(135deg, rgba({lighter[0]}, {lighter[1]}, {lighter[2]}, 0.7), "
        f"rgba({r}, {g}, {b}, 0.8), "
        f"rgba({darker[0]}, {darker[1]}, {darker[2]}, 0.9))"
    )


async def color_placeholder(resolver: ImageUrlResolver, src: str, *, client: httpx.AsyncClient) -> str:
    """Gradient placeholder for *src*; the neutral gradient on any failure."""

    url = await resolver.resolve(src, TransformOptions(width=_SAMPLE_SIZE, height=_SAMPLE_SIZE))
    try:
        resp = await client.get(url)
        resp.raise_for_status()
        return color_gradient(average_color(resp.content))
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Failed to fetch %s for placeholder: %s", url, exc)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        # PIL.UnidentifiedImageError is an OSError
        logger.warning("Failed to decode %s for placeholder: %s", url, exc)
    return NEUTRAL_GRADIENT
