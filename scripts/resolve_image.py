#!/usr/bin/env python
"""Script to resolve an image path through the CDN failover chain."""
from __future__ import annotations

import argparse
import asyncio
import json

from mediacdn.models import TransformOptions
from mediacdn.services.registry import get_health_tracker, get_prober, get_resolver


def _parse_widths(raw: str) -> list[int]:
    return [int(part) for part in raw.split(",") if part.strip()]


async def _run(args: argparse.Namespace) -> dict:
    resolver = get_resolver()
    options = TransformOptions(
        width=args.width,
        height=args.height,
        quality=args.quality,
        format=args.format,
        blur=args.blur,
    )
    result: dict = {"path": args.path, "url": await resolver.resolve(args.path, options)}
    if args.srcset:
        result["srcset"] = await resolver.build_srcset(args.path, _parse_widths(args.srcset), options)
    if args.lqip:
        result["lqip"] = await resolver.get_lqip(args.path)
    result["availability"] = get_health_tracker().snapshot().model_dump(mode="json")
    await get_prober().aclose()
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Resolve an image URL with CDN failover")
    parser.add_argument("path", help="Image path, e.g. /images/a.jpg")
    parser.add_argument("--width", type=int)
    parser.add_argument("--height", type=int)
    parser.add_argument("--quality", type=int)
    parser.add_argument("--format", choices=["auto", "webp", "avif", "jpg", "png"])
    parser.add_argument("--blur", type=int)
    parser.add_argument("--srcset", help="Comma separated widths, e.g. 400,800,1200")
    parser.add_argument("--lqip", action="store_true")
    args = parser.parse_args()

    result = asyncio.run(_run(args))
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
