"""Responsive ``<img>`` attribute builder on top of the failover resolver."""
from __future__ import annotations

import math
from typing import Sequence

from mediacdn.models import Focus, ImageFormat, ResponsiveImageAttributes, TransformOptions
from mediacdn.services.resolver import ImageUrlResolver

_MAX_LQIP_WIDTH = 40


def calculate_aspect_ratio(width: int, height: int) -> str:
    """Reduce *width* x *height* to a "W:H" ratio, e.g. 1920x1080 -> "16:9"."""

    if not width or not height:
        return ""
    divisor = math.gcd(width, height)
    return f"{width // divisor}:{height // divisor}"


def _height_from_ratio(width: int, aspect_ratio: str) -> int | None:
    try:
        ratio_w, ratio_h = (float(part) for part in aspect_ratio.split(":"))
    except ValueError:
        return None
    if ratio_w <= 0 or ratio_h <= 0:
        return None
    return round(width * ratio_h / ratio_w)


async def responsive_attributes(
    resolver: ImageUrlResolver,
    src: str,
    widths: Sequence[int],
    *,
    sizes: str = "100vw",
    base_width: int | None = None,
    base_height: int | None = None,
    quality: int = 80,
    format: ImageFormat | str = ImageFormat.WEBP,  # pylint: disable=redefined-builtin
    aspect_ratio: str | None = None,
    focus: Focus | str = Focus.CENTER,
    lqip: bool = True,
) -> ResponsiveImageAttributes:
    """Build src/srcset/sizes/lqip for *src* across *widths*.

    ``widths`` should be ascending; the first entry sizes the placeholder.
    """

    main_src = await resolver.resolve(
        src,
        TransformOptions(
            width=base_width,
            height=base_height,
            quality=quality,
            format=format,
            aspect_ratio=aspect_ratio,
            focus=focus,
        ),
    )
    srcset = await resolver.build_srcset(
        src,
        widths,
        TransformOptions(quality=quality, format=format, aspect_ratio=aspect_ratio, focus=focus),
    )

    lqip_url = None
    if lqip and widths:
        lqip_url = await resolver.get_lqip(src, min(widths[0], _MAX_LQIP_WIDTH))

    height = base_height
    if aspect_ratio and base_width and not base_height:
        height = _height_from_ratio(base_width, aspect_ratio)

    return ResponsiveImageAttributes(
        src=main_src,
        srcset=srcset,
        sizes=sizes,
        lqip=lqip_url,
        width=base_width,
        height=height,
    )
