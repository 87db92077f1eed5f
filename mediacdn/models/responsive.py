from __future__ import annotations

from pydantic import BaseModel, Field


class ResponsiveImageAttributes(BaseModel):
    src: str
    srcset: str
    sizes: str
    lqip: str | None = None  # placeholder URL, absent when disabled
    width: int | None = Field(None, ge=1)
    height: int | None = Field(None, ge=1)
