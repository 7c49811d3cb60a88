"""Parse one monthly schedule page into release events."""

import logging
import re
from datetime import time
from typing import Iterable, List, Optional, Set

from bs4 import BeautifulSoup, Tag

from ..config import (
    ARTIST_SELECTORS,
    DATE_SELECTOR,
    DETAIL_SELECTOR,
    POSTPONED_MARKER,
    ROW_SELECTOR,
    TIME_SELECTOR,
)
from ..dates import InvalidDateFormat, kst_to_local, parse_date, parse_time_kst
from ..deadline import Deadline
from ..filters.deduplication import Deduplicator
from ..filters.whitelist import normalize_members
from ..models import ReleaseEvent, TimeBucket
from .extractor import (
    DetailLine,
    extract_collection_title,
    extract_lead_track,
    extract_media_link,
    flatten_cell,
    has_event,
    split_events,
)

logger = logging.getLogger(__name__)

_AT_MARKER = re.compile(r"\bat\b", re.IGNORECASE)


def _cell_text(row: Tag, selector: str) -> str:
    found = row.select_one(selector)
    return found.get_text(" ", strip=True) if found else ""


class PageParser:
    """Walks the table rows of a schedule page for one target month."""

    def __init__(self, kst_offset_hours: int = -6, deduplicator: Optional[Deduplicator] = None):
        self.kst_offset_hours = kst_offset_hours
        self.deduplicator = deduplicator or Deduplicator()

    def parse(
        self,
        soup: BeautifulSoup,
        bucket: TimeBucket,
        whitelist: Iterable[str],
        deadline: Optional[Deadline] = None,
    ) -> List[ReleaseEvent]:
        """
        Extract the best record per (artist, date) for ``bucket``.

        Rows for artists outside ``whitelist``, postponed rows and events
        dated in another month are skipped. Returns records sorted by date.
        """
        members = normalize_members(whitelist)
        candidates: List[ReleaseEvent] = []
        rows = soup.select(ROW_SELECTOR)

        for row in rows:
            if deadline is not None and deadline.cancelled:
                logger.warning(f"Stopped parsing {bucket.label} after deadline")
                return []
            candidates.extend(self._parse_row(row, bucket, members))

        records = self.deduplicator.reduce(candidates)
        logger.debug(f"Parsed {len(rows)} rows for {bucket.label}: {len(records)} releases")
        return records

    def _row_artist(self, row: Tag) -> str:
        for selector in ARTIST_SELECTORS:
            artist = _cell_text(row, selector)
            if artist:
                return artist
        return ""

    def _row_time(self, row: Tag) -> Optional[time]:
        time_text = _cell_text(row, TIME_SELECTOR)
        if not _AT_MARKER.search(time_text):
            return None
        try:
            return kst_to_local(parse_time_kst(time_text), self.kst_offset_hours)
        except InvalidDateFormat as e:
            logger.debug(f"Ignoring time {time_text!r}: {e}")
            return None

    def _row_lines(self, row: Tag) -> List[DetailLine]:
        lines: List[DetailLine] = []
        for cell in row.select(DETAIL_SELECTOR):
            lines.extend(flatten_cell(cell))
        return lines

    def _parse_row(self, row: Tag, bucket: TimeBucket, members: Set[str]) -> List[ReleaseEvent]:
        date_text = _cell_text(row, DATE_SELECTOR)
        if not date_text:
            return []

        artist = self._row_artist(row)
        if not artist or artist.lower() not in members:
            return []
        if POSTPONED_MARKER in row.get_text(" ", strip=True).lower():
            logger.debug(f"Skipping postponed row for {artist}")
            return []

        lines = self._row_lines(row)
        if len(lines) < 2:
            logger.debug(f"No details extracted for {artist}")
            return []

        time_of_day = self._row_time(row)
        events = []
        for group in split_events(lines, bucket.year):
            raw_date = group.date_text or date_text
            try:
                event_date = parse_date(raw_date, bucket.year)
            except InvalidDateFormat as e:
                logger.debug(f"Skipping event for {artist}: {e}")
                continue
            if not bucket.contains(event_date):
                continue

            texts = group.texts
            if not has_event(texts):
                logger.debug(f"No release marker for {artist} on {event_date}: {texts}")
                continue

            events.append(
                ReleaseEvent(
                    entity_name=artist,
                    date=event_date,
                    time_of_day=time_of_day,
                    collection_title=extract_collection_title(texts),
                    lead_track_title=extract_lead_track(texts),
                    media_link=extract_media_link(group.lines),
                )
            )
        return events
