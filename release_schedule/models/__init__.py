from .bucket import TimeBucket
from .cache_entry import CacheBucketKey, CacheEntry, PendingUpdateMark
from .refresh_report import RefreshReport
from .release import ReleaseEvent

__all__ = [
    "CacheBucketKey",
    "CacheEntry",
    "PendingUpdateMark",
    "RefreshReport",
    "ReleaseEvent",
    "TimeBucket",
]
