"""Network error report."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class NetworkError(BaseModel):
    """Failed request as reported by a fetcher.

    The JSON form of this model is what a failed source stores in its
    cache slot, so it shows up in the diagnostic fingerprint.
    """

    model_config = ConfigDict(frozen=True)

    url: str = ""
    status: int = -1
    """HTTP status code, ``-1`` for network failures and timeouts."""
    reason: str = ""

    def to_json(self) -> str:
        return self.model_dump_json()

    def __str__(self) -> str:
        return f"NetworkError {self.status} {self.reason!r} for {self.url}"
