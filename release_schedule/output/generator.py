"""Persistence of refreshed release batches."""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List

from ..models import ReleaseEvent, TimeBucket
from .formatter import format_release

logger = logging.getLogger(__name__)


class PersistenceSink(ABC):
    """Receives every batch the Updater caches. Delivery is best effort."""

    @abstractmethod
    def save(self, bucket: TimeBucket, records: List[ReleaseEvent]):
        """Persist one month's records."""


class FileReleaseSink(PersistenceSink):
    """Write machine-readable and human-readable files per month."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def json_path(self, bucket: TimeBucket) -> Path:
        return self.output_dir / f"releases_{bucket.key}.json"

    def text_path(self, bucket: TimeBucket) -> Path:
        return self.output_dir / f"releases_{bucket.key}.txt"

    def save(self, bucket: TimeBucket, records: List[ReleaseEvent]):
        """
        Write ``releases_<month>-<year>.json`` and ``.txt``.

        Format of the text file:
        1. Header with month, generation time and record count
        2. One line per release, sorted by date
        """
        generated = datetime.now().strftime("%Y-%m-%d %H:%M")

        payload = {
            "bucket": bucket.key,
            "generated_at": generated,
            "releases": [record.to_dict() for record in records],
        }
        json_file = self.json_path(bucket)
        with open(json_file, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        lines = []
        lines.append(f"Releases - {bucket.month_name.capitalize()} {bucket.year}")
        lines.append(f"Generated: {generated}")
        lines.append(f"Total releases: {len(records)}")
        lines.append("=" * 70)
        lines.append("")
        for record in records:
            lines.append(format_release(record, html=False))
        lines.append("")

        text_file = self.text_path(bucket)
        text_file.write_text("\n".join(lines), encoding="utf-8")

        logger.info(f"Output written to: {json_file}")
        logger.info(f"  - {len(records)} releases")

    def load(self, bucket: TimeBucket) -> List[ReleaseEvent]:
        """Read back a previously saved batch; missing file means no records."""
        json_file = self.json_path(bucket)
        if not json_file.exists():
            return []
        with open(json_file, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return [ReleaseEvent.from_dict(item) for item in payload.get("releases", [])]
