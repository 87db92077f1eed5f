from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ImageFormat(str, Enum):
    AUTO = "auto"
    WEBP = "webp"
    AVIF = "avif"
    JPG = "jpg"
    PNG = "png"


class CropMode(str, Enum):
    MAINTAIN_RATIO = "maintain_ratio"
    FORCE = "force"
    AT_LEAST = "at_least"
    AT_MAX = "at_max"


class Focus(str, Enum):
    CENTER = "center"
    TOP = "top"
    LEFT = "left"
    BOTTOM = "bottom"
    RIGHT = "right"
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"


class TransformOptions(BaseModel):
    """Per-call image transformation request for the primary CDN.

    Every field is optional and encoded on its own; the backup tier ignores
    all of them.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    width: int | None = Field(None, gt=0)
    height: int | None = Field(None, gt=0)
    quality: int | None = Field(None, ge=1, le=100)
    format: ImageFormat | None = None
    blur: int | None = Field(None, ge=0)
    aspect_ratio: str | None = Field(None, pattern=r"^\d+(\.\d+)?:\d+(\.\d+)?$")  # e.g., "16:9"
    crop: CropMode | None = None
    focus: Focus | None = None

    def cache_key(self) -> str:
        return self.model_dump_json(exclude_none=True)
