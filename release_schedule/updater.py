"""Refresh cycle: fetch schedule pages and write the results into the cache."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Set

from .config import Settings
from .deadline import Deadline
from .filters.deduplication import Deduplicator
from .filters.whitelist import WhitelistProvider
from .models import RefreshReport, ReleaseEvent, TimeBucket
from .output.generator import PersistenceSink
from .scrapers.base import ScraperError, StructureChangedError
from .scrapers.schedule_scraper import ScheduleScraper
from .state.cache import ReleaseCache

logger = logging.getLogger(__name__)


class _BucketResults:
    """Results of one bucket's page tasks, keyed by link index."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[int, List[ReleaseEvent]] = {}
        self.last_error: Optional[str] = None

    def add(self, index: int, records: List[ReleaseEvent]):
        with self._lock:
            self._records[index] = records

    def fail(self, reason: str):
        with self._lock:
            self.last_error = reason

    @property
    def succeeded(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> List[ReleaseEvent]:
        with self._lock:
            return [r for index in sorted(self._records) for r in self._records[index]]


class Updater:
    """Runs one refresh for a set of months."""

    def __init__(
        self,
        settings: Settings,
        fetcher: ScheduleScraper,
        cache: ReleaseCache,
        whitelist_provider: WhitelistProvider,
        sink: Optional[PersistenceSink] = None,
        deduplicator: Optional[Deduplicator] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher
        self.cache = cache
        self.whitelist_provider = whitelist_provider
        self.sink = sink
        self.deduplicator = deduplicator or Deduplicator()

    def refresh(
        self, buckets: Iterable[TimeBucket], deadline: Optional[Deadline] = None
    ) -> RefreshReport:
        """
        Fetch and cache every bucket.

        A failing bucket never stops the others; see the returned report for
        what happened to each one.
        """
        buckets = list(buckets)
        report = RefreshReport(started_at=time.time())
        overall = (deadline or Deadline()).child(self.settings.refresh_timeout)

        whitelist = self.whitelist_provider.united_members()
        if not whitelist:
            logger.warning("Whitelist is empty, nothing to refresh")
            report.empty.extend(b.key for b in buckets)
            return self._finish(report)

        try:
            links = self.fetcher.fetch_link_list(buckets, overall)
        except StructureChangedError as e:
            logger.error(f"Listing page layout changed: {e}")
            return self._fail_all(report, buckets, str(e))
        except ScraperError as e:
            logger.error(f"Could not fetch schedule links: {e}")
            return self._fail_all(report, buckets, str(e))

        for bucket in buckets:
            if overall.cancelled:
                report.failed[bucket.key] = "refresh deadline exceeded"
                continue
            bucket_links = [link for link in links if bucket.matches_link(link)]
            self._refresh_bucket(bucket, bucket_links, whitelist, overall, report)

        return self._finish(report)

    def _fail_all(self, report: RefreshReport, buckets: List[TimeBucket], reason: str):
        for bucket in buckets:
            report.failed[bucket.key] = reason
        return self._finish(report)

    def _finish(self, report: RefreshReport) -> RefreshReport:
        report.finished_at = time.time()
        logger.info(f"Refresh finished: {report.summary()}")
        return report

    def _fetch_link(
        self,
        index: int,
        url: str,
        bucket: TimeBucket,
        whitelist: Set[str],
        deadline: Deadline,
        results: _BucketResults,
    ):
        try:
            records = self.fetcher.fetch_and_parse(url, bucket, whitelist, deadline)
        except ScraperError as e:
            logger.warning(f"{bucket.key}: {e}")
            results.fail(str(e))
            return
        if deadline.cancelled:
            results.fail(f"deadline exceeded for {url}")
            return
        results.add(index, records)

    def _refresh_bucket(
        self,
        bucket: TimeBucket,
        links: List[str],
        whitelist: Set[str],
        parent: Deadline,
        report: RefreshReport,
    ):
        if not links:
            logger.info(f"{bucket.key}: no schedule pages listed")
            report.empty.append(bucket.key)
            return

        logger.info(f"{bucket.key}: fetching {len(links)} pages")
        bucket_deadline = parent.child(self.settings.bucket_timeout)
        results = _BucketResults()
        workers = min(len(links), self.settings.max_concurrent_requests)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(
                    self._fetch_link, index, url, bucket, whitelist, bucket_deadline, results
                )
                for index, url in enumerate(links)
            ]
            _, not_done = wait(futures, timeout=bucket_deadline.remaining())
            if not_done:
                logger.warning(f"{bucket.key}: {len(not_done)} pages still running at deadline")
                bucket_deadline.cancel()

        for future in futures:
            error = future.exception()
            if error is not None:
                logger.error(f"{bucket.key}: page task crashed: {error}")
                results.fail(str(error))

        records = results.records()
        if records:
            records = self.deduplicator.reduce(records)
            self.cache.store(bucket, records, links, whitelist)
            self._save(bucket, records)
            report.successful.append(bucket.key)
            report.total_records += len(records)
        elif results.succeeded == 0:
            report.failed[bucket.key] = results.last_error or "all pages failed"
        else:
            report.empty.append(bucket.key)

    def _save(self, bucket: TimeBucket, records: List[ReleaseEvent]):
        if self.sink is None:
            return
        try:
            self.sink.save(bucket, records)
        except Exception as e:
            logger.error(f"Failed to persist {bucket.key}: {e}")
