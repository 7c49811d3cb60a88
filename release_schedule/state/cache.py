"""In-memory TTL cache of release records per month."""

import logging
import threading
import time
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..config import Settings
from ..filters.whitelist import WhitelistFilter, WhitelistProvider, fingerprint
from ..models import CacheBucketKey, CacheEntry, PendingUpdateMark, ReleaseEvent, TimeBucket
from .scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

RefreshCallable = Callable[[List[TimeBucket]], object]


class ReleaseCache:
    """
    Records keyed by (month, whitelist fingerprint).

    Reads never fetch anything: a miss is reported back to the caller, who
    decides whether to call ``schedule_refresh``. The Updater is the only
    writer, via ``store``.
    """

    def __init__(
        self,
        settings: Settings,
        whitelist_provider: WhitelistProvider,
        refresh: Optional[RefreshCallable] = None,
        clock: Callable[[], float] = time.time,
        today: Optional[Callable[[], date]] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.settings = settings
        self.whitelist_provider = whitelist_provider
        self._refresh = refresh
        self._clock = clock
        self._today = today or date.today
        self._entries: Dict[CacheBucketKey, CacheEntry] = {}
        self._entries_lock = threading.Lock()
        self._pending: Dict[str, PendingUpdateMark] = {}
        self._pending_lock = threading.Lock()
        self._timer_factory = timer_factory
        self._scheduler = RefreshScheduler(
            settings.refresh_debounce_delay, self._run_refresh, timer_factory
        )
        self._periodic_lock = threading.Lock()
        self._periodic_timer: Optional[threading.Timer] = None
        self._periodic_buckets: List[TimeBucket] = []
        self._periodic_generation = 0

    def set_updater(self, updater):
        """Attach the Updater once both objects exist."""
        self._refresh = updater.refresh

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    def _ttl(self, bucket: TimeBucket) -> float:
        if bucket.is_active(self._today()):
            return self.settings.cache_ttl_active
        return self.settings.cache_ttl_inactive

    def _key(self, bucket: TimeBucket, members: Iterable[str]) -> CacheBucketKey:
        return CacheBucketKey(bucket.key, fingerprint(members))

    def _current_key(self, bucket: TimeBucket) -> CacheBucketKey:
        return self._key(bucket, self.whitelist_provider.united_members())

    def _fresh_entry(self, key: CacheBucketKey, bucket: TimeBucket) -> Optional[CacheEntry]:
        with self._entries_lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.age(self._clock()) >= self._ttl(bucket):
            logger.debug(f"Cache entry for {bucket.key} expired")
            return None
        return entry

    def query(
        self, buckets: Iterable[TimeBucket], whitelist: Iterable[str]
    ) -> Tuple[List[ReleaseEvent], List[TimeBucket]]:
        """
        Cached records for ``buckets``, filtered to ``whitelist``.

        Returns the records sorted by date and the buckets with no fresh
        entry.

        Raises:
            EmptyWhitelist: if ``whitelist`` has no members.
        """
        allowed = WhitelistFilter(whitelist)
        records: List[ReleaseEvent] = []
        missing: List[TimeBucket] = []
        for bucket in buckets:
            entry = self._fresh_entry(self._current_key(bucket), bucket)
            if entry is None:
                missing.append(bucket)
                continue
            records.extend(allowed.filter(entry.records))

        records.sort(key=lambda r: (r.date, r.entity_name.lower()))
        logger.debug(f"Query: {len(records)} records, {len(missing)} missing buckets")
        return records, missing

    def store(
        self,
        bucket: TimeBucket,
        records: Iterable[ReleaseEvent],
        links: Iterable[str],
        whitelist: Iterable[str],
    ):
        """Replace the entry for ``bucket`` under ``whitelist``'s fingerprint."""
        entry = CacheEntry(tuple(records), tuple(links), self._clock())
        key = self._key(bucket, whitelist)
        with self._entries_lock:
            self._entries[key] = entry
        logger.info(f"Cached {len(entry.records)} records for {bucket.key}")

    def get_cached_links(self, bucket: TimeBucket) -> List[str]:
        entry = self._fresh_entry(self._current_key(bucket), bucket)
        return list(entry.links) if entry else []

    def cleanup_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        today = self._today()
        removed = 0
        with self._entries_lock:
            for key in list(self._entries):
                bucket = TimeBucket.parse(key.time_bucket)
                ttl = (
                    self.settings.cache_ttl_active
                    if bucket.is_active(today)
                    else self.settings.cache_ttl_inactive
                )
                if self._entries[key].age(now) >= ttl:
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.info(f"Removed {removed} expired cache entries")
        return removed

    def is_pending_for(self, bucket: TimeBucket) -> bool:
        """True if a refresh is scheduled or running; stale marks are dropped."""
        with self._pending_lock:
            return self._pending_locked(bucket.key)

    def _pending_locked(self, key: str) -> bool:
        mark = self._pending.get(key)
        if mark is None:
            return False
        if mark.is_stale(self._clock(), self.settings.pending_mark_timeout):
            logger.warning(f"Dropping abandoned refresh mark for {key}")
            del self._pending[key]
            return False
        return True

    def schedule_refresh(self, buckets: Iterable[TimeBucket]) -> bool:
        """
        Ask for a background refresh of ``buckets``.

        Returns False when every bucket already has a refresh pending.
        """
        buckets = list(buckets)
        now = self._clock()
        with self._pending_lock:
            fresh = [b for b in buckets if not self._pending_locked(b.key)]
            if not fresh:
                return False
            for bucket in fresh:
                self._pending[bucket.key] = PendingUpdateMark(bucket.key, now)
        logger.info(f"Refresh requested for {[b.key for b in fresh]}")
        self._scheduler.trigger(fresh)
        return True

    def _run_refresh(self, buckets: List[TimeBucket]):
        with self._pending_lock:
            marks = {b.key: self._pending.get(b.key) for b in buckets}
        try:
            if self._refresh is None:
                logger.error("No updater attached, refresh skipped")
                return
            self._refresh(buckets)
        finally:
            with self._pending_lock:
                for key, mark in marks.items():
                    # Leave marks placed by a newer request in place.
                    if mark is not None and self._pending.get(key) is mark:
                        del self._pending[key]

    def invalidate(self):
        """Forget every entry and pending mark."""
        with self._entries_lock:
            self._entries.clear()
        with self._pending_lock:
            self._pending.clear()
        logger.info("Cache invalidated")

    def start_periodic_refresh(self, buckets: Iterable[TimeBucket]):
        """
        Keep ``buckets`` warm in the background.

        Requests a refresh now, then every ``refresh_interval`` seconds drops
        expired entries and requests a refresh of the buckets that are active
        or have no fresh entry. Calling it again replaces the bucket list.
        """
        with self._periodic_lock:
            self._periodic_buckets = list(buckets)
            self._periodic_generation += 1
            if self._periodic_timer is not None:
                self._periodic_timer.cancel()
            self._start_periodic_timer_locked()
            buckets = list(self._periodic_buckets)
        logger.info(
            f"Periodic refresh every {self.settings.refresh_interval}s for {[b.key for b in buckets]}"
        )
        self.schedule_refresh(buckets)

    def _start_periodic_timer_locked(self):
        timer = self._timer_factory(
            self.settings.refresh_interval,
            self._periodic_tick,
            args=(self._periodic_generation,),
        )
        timer.daemon = True
        self._periodic_timer = timer
        timer.start()

    def _due_buckets(self, buckets: Iterable[TimeBucket]) -> List[TimeBucket]:
        today = self._today()
        return [
            b
            for b in buckets
            if b.is_active(today) or self._fresh_entry(self._current_key(b), b) is None
        ]

    def _periodic_tick(self, generation: int):
        with self._periodic_lock:
            if generation != self._periodic_generation or self._periodic_timer is None:
                logger.debug("Stale periodic refresh tick ignored")
                return
            buckets = list(self._periodic_buckets)
        try:
            self.cleanup_expired()
            due = self._due_buckets(buckets)
            if due:
                self.schedule_refresh(due)
            else:
                logger.debug("Periodic refresh: every bucket is fresh")
        except Exception:
            logger.exception("Periodic refresh tick failed")
        finally:
            with self._periodic_lock:
                if generation == self._periodic_generation and self._periodic_timer is not None:
                    self._start_periodic_timer_locked()

    def stop_periodic_refresh(self):
        with self._periodic_lock:
            self._periodic_generation += 1
            if self._periodic_timer is not None:
                self._periodic_timer.cancel()
                self._periodic_timer = None
                logger.info("Periodic refresh stopped")

    def shutdown(self):
        self.stop_periodic_refresh()
        self._scheduler.shutdown()
