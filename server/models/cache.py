"""File-backed cache records and aggregate statistics.

One JSON document per key lives under the cache root. The document carries
the absolute expiry time computed at write time, so readers never recompute
it from the TTL.
"""

from dataclasses import dataclass
from typing import Any, Optional
from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """A single persisted cache record."""

    key: str
    payload: Any = None
    created_at: int = Field(ge=0)  # ms since epoch
    ttl_ms: int = Field(ge=0)
    expires_at: int = Field(ge=0)  # created_at + ttl_ms

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at


class CacheStats(BaseModel):
    """Aggregate counts over every record in the cache root."""

    total_entries: int = 0
    valid_entries: int = 0
    expired_entries: int = 0
    corrupt_entries: int = 0
    total_size: int = 0  # bytes

    @property
    def total_size_mb(self) -> str:
        return f"{self.total_size / (1024 * 1024):.2f}"

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["total_size_mb"] = self.total_size_mb
        return data


@dataclass
class LoadResult:
    """Outcome of reading one record: either an entry or the failure reason."""

    entry: Optional[CacheEntry] = None
    error: Optional[str] = None
    missing: bool = False

    @property
    def ok(self) -> bool:
        return self.entry is not None
