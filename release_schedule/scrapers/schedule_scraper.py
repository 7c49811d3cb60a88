"""Scraper for the kpopofficial comeback schedule pages."""

from typing import Iterable, List, Optional

from ..config import LISTING_URL, SCHEDULE_LINK_MARKER, SITE_HOST, Settings
from ..deadline import Deadline
from ..models import ReleaseEvent, TimeBucket
from .base import BaseScraper, ParseTimeout, StructureChangedError
from .page_parser import PageParser


class ScheduleScraper(BaseScraper):
    """Fetches the monthly schedule index and the schedule pages it links to."""

    SOURCE_NAME = "kpopofficial comeback schedule"
    BASE_URL = LISTING_URL

    def __init__(self, settings: Settings, session=None, parser: Optional[PageParser] = None):
        super().__init__(settings, session)
        self.parser = parser or PageParser(settings.kst_offset_hours)

    def fetch_link_list(self, buckets: Iterable[TimeBucket], deadline: Deadline) -> List[str]:
        """
        Collect schedule page links for the requested buckets.

        Raises:
            FetchFailed: if the listing page cannot be fetched.
            StructureChangedError: if the page has no schedule links at all.
        """
        buckets = list(buckets)
        soup = self._fetch_page(self.BASE_URL, deadline)

        hrefs = [
            a.get("href", "")
            for a in soup.find_all("a", href=True)
            if SCHEDULE_LINK_MARKER in a.get("href", "")
        ]
        if not hrefs:
            raise StructureChangedError(
                f"{self.SOURCE_NAME}: no schedule links on {self.BASE_URL}"
            )

        links = []
        seen = set()
        for href in hrefs:
            if SITE_HOST not in href or href in seen:
                continue
            if any(bucket.matches_link(href) for bucket in buckets):
                seen.add(href)
                links.append(href)

        self.logger.info(f"Found {len(links)} schedule links for {len(buckets)} months")
        self._validate_results(links)
        return links

    def fetch_and_parse(
        self,
        url: str,
        bucket: TimeBucket,
        whitelist: Iterable[str],
        deadline: Deadline,
    ) -> List[ReleaseEvent]:
        """
        Fetch one schedule page and parse the releases for ``bucket``.

        Raises:
            FetchFailed: if the page cannot be fetched.
            ParseTimeout: if the deadline passes before parsing finishes.
        """
        soup = self._fetch_page(url, deadline)
        records = self.parser.parse(soup, bucket, whitelist, deadline)
        if deadline.cancelled:
            raise ParseTimeout(url)
        self.logger.info(f"{url}: {len(records)} releases for {bucket.label}")
        return records
