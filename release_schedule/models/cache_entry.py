"""Data model for cache entries and pending-update marks."""

from dataclasses import dataclass
from typing import NamedTuple, Tuple

from .release import ReleaseEvent


class CacheBucketKey(NamedTuple):
    time_bucket: str
    whitelist_fingerprint: str


@dataclass(frozen=True)
class CacheEntry:
    """Records fetched for one bucket. Replaced whole, never mutated."""

    records: Tuple[ReleaseEvent, ...]
    links: Tuple[str, ...]
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at


@dataclass(frozen=True)
class PendingUpdateMark:
    """A refresh scheduled or running for a bucket."""

    bucket: str
    started_at: float

    def is_stale(self, now: float, timeout: float) -> bool:
        return now - self.started_at >= timeout
