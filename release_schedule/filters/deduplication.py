"""Reduction of duplicate release announcements to one best record."""

import logging
from collections import OrderedDict
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Tuple

from ..models import ReleaseEvent

logger = logging.getLogger(__name__)

_FILLABLE_FIELDS = (
    "time_of_day",
    "collection_title",
    "lead_track_title",
    "media_link",
)


def _is_complete(record: ReleaseEvent) -> bool:
    return record.has_lead_track and record.has_media_link


def _rank(record: ReleaseEvent) -> tuple:
    """Sort key, best first: complete, then track title, then media link."""
    filled = sum(1 for name in _FILLABLE_FIELDS if getattr(record, name))
    return (
        not _is_complete(record),
        not record.has_lead_track,
        not record.has_media_link,
        -filled,
        record.entity_name,
        record.lead_track_title or "",
        record.media_link or "",
        record.collection_title or "",
        record.time_of_day.isoformat() if record.time_of_day else "",
    )


class Deduplicator:
    """Merge candidate announcements sharing an (artist, date) key."""

    def select_best(self, candidates: List[ReleaseEvent]) -> ReleaseEvent:
        """
        Pick the best candidate, then fill its empty fields from the others.

        1. A candidate with both a lead track and a media link wins outright.
        2. Otherwise one with a lead track beats one without.
        3. Otherwise one with a media link beats one without.
        Remaining ties go to the candidate with more fields set, then to the
        lowest field values, so input order never changes the result. Empty
        fields of the winner are filled from the other candidates in the
        same ranking.
        """
        if not candidates:
            raise ValueError("no candidates to select from")

        ranked = sorted(candidates, key=_rank)
        best = ranked[0]

        fills = {}
        for name in _FILLABLE_FIELDS:
            if getattr(best, name):
                continue
            for candidate in ranked[1:]:
                value = getattr(candidate, name)
                if value:
                    fills[name] = value
                    break
        if fills:
            best = replace(best, **fills)
        return best

    def reduce(self, records: Iterable[ReleaseEvent]) -> List[ReleaseEvent]:
        """Collapse records to one per key, sorted by date."""
        groups: Dict[Tuple[str, date], List[ReleaseEvent]] = OrderedDict()
        count = 0
        for record in records:
            groups.setdefault(record.key, []).append(record)
            count += 1

        reduced = [self.select_best(group) for group in groups.values()]
        reduced.sort(key=lambda r: (r.date, r.entity_name.lower()))

        if count != len(reduced):
            logger.debug(f"Deduplication: {count} candidates -> {len(reduced)} records")
        return reduced
