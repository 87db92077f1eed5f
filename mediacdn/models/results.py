from __future__ import annotations

from pydantic import BaseModel


class ProbeResult(BaseModel):
    """Outcome of a single primary-provider health probe."""

    ok: bool
    status_code: int | None = None
    error: str | None = None
    elapsed_ms: float = 0.0


class SignedUrlResult(BaseModel):
    """Outcome of a single backup signing attempt."""

    ok: bool
    url: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, url: str) -> "SignedUrlResult":
        return cls(ok=True, url=url)

    @classmethod
    def failure(cls, error: str) -> "SignedUrlResult":
        return cls(ok=False, error=error)
